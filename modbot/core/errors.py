"""Exception hierarchy for the modbot framework."""


class ModbotError(Exception):
    """Base class for all framework errors."""


class RoutingError(ModbotError):
    """Raised when a routing string cannot be parsed or built."""


class StoreError(ModbotError):
    """Raised when the entity store fails to read or write."""


class ScopeLoadError(ModbotError):
    """Raised when a command cannot be prepared for a scope."""

    def __init__(self, command_name: str, scope_id: str, reason: str):
        self.command_name = command_name
        self.scope_id = scope_id
        super().__init__(f"Cannot load {command_name} for scope {scope_id}: {reason}")


class PublishError(ModbotError):
    """Raised when publishing a scope's command list fails."""

    def __init__(self, scope_id: str, reason: str):
        self.scope_id = scope_id
        super().__init__(f"Cannot publish commands for scope {scope_id}: {reason}")
