"""Tenant resolution: external account / instance identifiers -> Company."""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy.orm import Session

from app.exceptions import CompanyNotFoundError, InstanceNotFoundError
from app.models.company import Company
from app.models.instance import Instance


class CompanyService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_by_chatwoot_account(self, account_id: Any) -> Optional[Company]:
        try:
            account_id = int(account_id)
        except (TypeError, ValueError):
            return None
        return (
            self.db.query(Company)
            .filter(Company.chatwoot_account_id == account_id)
            .first()
        )

    def resolve_chatwoot_account(self, account_id: Any) -> Company:
        """Company for a support-platform account id; raises CompanyNotFoundError."""
        company = self.get_by_chatwoot_account(account_id)
        if company is None:
            raise CompanyNotFoundError(account_id)
        return company

    def resolve_instance(self, instance_name: str) -> Instance:
        """Gateway instance by its external name; raises InstanceNotFoundError."""
        instance = (
            self.db.query(Instance)
            .filter(Instance.uazapi_instance_name == instance_name)
            .first()
        )
        if instance is None:
            raise InstanceNotFoundError(instance_name)
        return instance
