"""Gateway -> support platform relay."""

from app.commands.relay.relay_message_command import RelayMessageCommand, RelayOutcome

__all__ = ["RelayMessageCommand", "RelayOutcome"]
