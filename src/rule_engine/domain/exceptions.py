"""Custom exceptions for the rule engine."""


class RuleEngineException(Exception):
    """Base exception for all rule engine errors."""

    def __init__(self, message: str, details: dict | None = None):
        """
        Initialize rule engine exception.

        Args:
            message: Human-readable error message
            details: Optional dict with additional error context
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InvalidEvaluationRequestError(RuleEngineException, ValueError):
    """Raised when evaluate/update_stats receive unusable arguments."""

    pass


class RuleValidationError(RuleEngineException):
    """Raised when a stored rule record cannot be turned into a NotificationRule."""

    def __init__(self, rule_id: int | str | None, errors: list[str]):
        super().__init__(
            message=f"Rule {rule_id} failed validation: {'; '.join(errors)}",
            details={"rule_id": rule_id, "errors": errors},
        )


class RuleEvaluationError(RuleEngineException):
    """Raised by a condition evaluator when a rule cannot be evaluated."""

    def __init__(self, rule_id: int | str, reason: str, original_error: Exception | None = None):
        details: dict = {"rule_id": rule_id}
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__
        super().__init__(f"Rule {rule_id} could not be evaluated: {reason}", details)


class DispatchError(RuleEngineException):
    """Base exception for delivery and dispatch faults."""

    pass


class UnsupportedChannelError(DispatchError):
    """Raised when no sender is configured for a channel."""

    def __init__(self, channel: str):
        super().__init__(
            message=f"No sender configured for channel {channel}",
            details={"channel": channel},
        )


class TemplateNotFoundError(DispatchError):
    """Raised when a rule references an unknown template."""

    def __init__(self, template_name: str):
        super().__init__(
            message=f"Template not found: {template_name}",
            details={"template_name": template_name},
        )


class TemplateChannelMismatchError(DispatchError):
    """Raised when a template is used on a channel it was not written for."""

    def __init__(self, template_name: str, expected: str, actual: str):
        super().__init__(
            message=f"Template {template_name} is a {actual} template, not {expected}",
            details={"template_name": template_name, "expected": expected, "actual": actual},
        )


class ChannelDeliveryError(DispatchError):
    """Raised when a channel sender fails to deliver."""

    def __init__(self, channel: str, recipient: str, original_error: Exception):
        super().__init__(
            message=f"Delivery over {channel} to {recipient} failed: {original_error}",
            details={
                "channel": channel,
                "recipient": recipient,
                "original_error": str(original_error),
                "original_error_type": type(original_error).__name__,
            },
        )
