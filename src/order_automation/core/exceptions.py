"""Exception hierarchy for the automation service."""


class AutomationError(Exception):
    """Base class for automation errors."""


class AutomationConfigError(AutomationError):
    """Configuration is missing or invalid; aborts the pass or startup."""


class RuleStoreError(AutomationError):
    """Active status rules could not be loaded."""


class DispatchError(AutomationError):
    """A notification could not be handed to the email provider."""


class StatusModelImportError(AutomationError):
    """Status model rows could not be read or parsed."""
