"""Exceptions raised by alert management operations."""


class AlertServiceError(Exception):
    """Base exception for alert management errors."""

    pass


class AlertNotFoundError(AlertServiceError):
    """Raised when the requested alert does not exist."""

    def __init__(self, alert_id: int):
        self.alert_id = alert_id
        super().__init__(f"Job alert {alert_id} not found")


class AlertAccessDeniedError(AlertServiceError):
    """Raised when a user acts on an alert owned by someone else."""

    def __init__(self, alert_id: int, user_id: int):
        self.alert_id = alert_id
        self.user_id = user_id
        super().__init__(f"User {user_id} is not allowed to access job alert {alert_id}")


class DuplicateAlertNameError(AlertServiceError):
    """Raised when a user already has an alert with the same name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Alert with name '{name}' already exists")


class UserNotFoundError(AlertServiceError):
    """Raised when the alert owner cannot be found."""

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class NoMatchingJobsError(AlertServiceError):
    """Raised when a test email is requested but the alert matches no jobs."""

    pass


class NotificationDeliveryError(AlertServiceError):
    """Raised when a test email could not be delivered."""

    pass


class InvalidAlertError(AlertServiceError):
    """Raised when the resulting alert settings are not valid."""

    pass
