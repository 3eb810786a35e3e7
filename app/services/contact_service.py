"""
Contact reconciliation: find-or-create by normalized phone within a company.

The unique constraint on (company_id, phone_normalized) is the source of
truth; a concurrent insert that loses the race re-reads and updates instead.
"""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.constants.sync import CONTACT_SOURCE_WHATSAPP
from app.models.contact import Contact
from app.utils.phone import digits_only, normalize_phone, phone_dedup_key

logger = logging.getLogger(__name__)


class ContactAttributes(BaseModel):
    """Attributes an event may carry for a contact. None means "not supplied"."""

    name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    chatwoot_contact_id: Optional[int] = None


_MERGEABLE_FIELDS = ("name", "email", "avatar_url")


class ContactService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self._country_code = get_settings().default_country_code

    def get_by_phone(self, company_id: UUID, phone_normalized: str) -> Optional[Contact]:
        return (
            self.db.query(Contact)
            .filter(
                Contact.company_id == company_id,
                Contact.phone_normalized == phone_normalized,
            )
            .first()
        )

    def update_existing(
        self,
        company_id: UUID,
        phone: Optional[str],
        attrs: ContactAttributes,
    ) -> Optional[Contact]:
        """Merge attrs into the contact for phone. Unknown phones are not created."""
        phone_normalized = phone_dedup_key(phone, self._country_code)
        if not phone_normalized:
            return None
        contact = self.get_by_phone(company_id, phone_normalized)
        if contact is None:
            return None
        return self._merge(contact, attrs)

    def upsert_contact(
        self,
        company_id: UUID,
        phone: Optional[str],
        attrs: Optional[ContactAttributes] = None,
    ) -> Optional[Contact]:
        """
        Find-or-create the contact for phone and merge attrs into it.

        Returns the post-write row, or None when phone has no digits.
        """
        attrs = attrs or ContactAttributes()
        display_phone = normalize_phone(phone, self._country_code)
        if not display_phone:
            logger.info("Skipping contact upsert without phone for company %s", company_id)
            return None
        phone_normalized = digits_only(display_phone)

        contact = self.get_by_phone(company_id, phone_normalized)
        if contact is not None:
            return self._merge(contact, attrs)

        contact = Contact(
            company_id=company_id,
            phone=display_phone,
            phone_normalized=phone_normalized,
            name=attrs.name or None,
            email=attrs.email or None,
            avatar_url=attrs.avatar_url or None,
            chatwoot_contact_id=attrs.chatwoot_contact_id,
            source=CONTACT_SOURCE_WHATSAPP,
        )
        self.db.add(contact)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost an insert race against a concurrent delivery for the same phone
            self.db.rollback()
            existing = self.get_by_phone(company_id, phone_normalized)
            if existing is None:
                raise
            logger.info(
                "Contact %s created concurrently, merging instead", phone_normalized
            )
            return self._merge(existing, attrs)
        self.db.refresh(contact)
        return contact

    def _merge(self, contact: Contact, attrs: ContactAttributes) -> Contact:
        """Non-destructive merge: empty values never overwrite present ones."""
        changed = False
        for field in _MERGEABLE_FIELDS:
            value = getattr(attrs, field)
            if value and value != getattr(contact, field):
                setattr(contact, field, value)
                changed = True
        if (
            attrs.chatwoot_contact_id is not None
            and attrs.chatwoot_contact_id != contact.chatwoot_contact_id
        ):
            contact.chatwoot_contact_id = attrs.chatwoot_contact_id
            changed = True
        if changed:
            self.db.commit()
            self.db.refresh(contact)
        return contact
