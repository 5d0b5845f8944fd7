"""
Domain errors for the scheduled publication lifecycle.

PublicationError
+-- ValidationError          -> 400, malformed input (past time, missing content)
+-- NotFoundError            -> 404, referenced record does not exist
+-- InvalidTransitionError   -> 409, event not allowed from the current status
|   +-- StaleStateError      -> 409, conditional update lost a race
+-- PublishError             recorded on the entity, never returned to the scheduler
    +-- PartialPublishError  part of a thread went out; the post exists on the platform
"""
from typing import Any, Dict, List, Optional


class PublicationError(Exception):
    """Base class; `code` is the machine readable error code used in API envelopes."""

    code = "publication_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details


class ValidationError(PublicationError):
    code = "validation_error"


class NotFoundError(PublicationError):
    code = "not_found"

    def __init__(self, resource: str, resource_id: Any) -> None:
        super().__init__(f"{resource} not found: {resource_id}", resource=resource, id=str(resource_id))
        self.resource = resource
        self.resource_id = resource_id


class InvalidTransitionError(PublicationError):
    code = "invalid_transition"

    def __init__(self, scheduled_post_id: str, event: str, current_status: Optional[str]) -> None:
        super().__init__(
            f"Cannot {event} scheduled post {scheduled_post_id} in status {current_status!r}",
            id=scheduled_post_id,
            event=event,
            status=current_status,
        )
        self.scheduled_post_id = scheduled_post_id
        self.event = event
        self.current_status = current_status


class StaleStateError(InvalidTransitionError):
    """The row was legal to transition when read, but changed before the conditional update landed."""

    code = "stale_state"


class PublishError(PublicationError):
    """Platform call failed. kind: network | auth | rate_limit | api | config."""

    code = "publish_error"

    def __init__(self, message: str, kind: str = "api", status_code: Optional[int] = None) -> None:
        super().__init__(message, kind=kind, status_code=status_code)
        self.kind = kind
        self.status_code = status_code


class PartialPublishError(PublishError):
    """A multi-part publish stopped midway. external_post_id is the first part, which is live."""

    code = "partial_publish"

    def __init__(
        self,
        message: str,
        external_post_id: str,
        posted_ids: List[str],
        kind: str = "api",
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, kind=kind, status_code=status_code)
        self.external_post_id = external_post_id
        self.posted_ids = list(posted_ids)
        self.details["external_post_id"] = external_post_id
        self.details["posted_ids"] = self.posted_ids
