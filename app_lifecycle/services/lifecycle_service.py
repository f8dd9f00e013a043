"""
Application lifecycle service.

Owns every status change of an application to a post:

- apply: a candidate applies, the post records them as an applicant
- approve: one application wins the post; every other pending application for
  the post is archived to ``declined_applications`` with an auto-decline reason
- decline / accept / reject / reopen: direct decisions by the post owner
- withdrawal: the candidate asks to withdraw, an administrator approves or
  declines the request

Multi-document changes run inside ``DocumentStore.transaction()`` when
``lifecycle_atomic_transitions`` is enabled. Without it (a standalone MongoDB)
the approval cascade is best effort: siblings that fail to archive are logged
and left in place.
"""
import re
from collections.abc import Callable
from contextlib import asynccontextmanager, nullcontext
from dataclasses import dataclass, field
from datetime import datetime
from functools import wraps

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import ConnectionFailure, DuplicateKeyError, PyMongoError

from app_lifecycle.core.config import Settings, settings as default_settings
from app_lifecycle.core.database import APPLICATIONS, DECLINED_APPLICATIONS, POSTS
from app_lifecycle.core.exceptions import (
    ApplicationNotFoundError,
    ApplicationOwnershipError,
    DatabaseConnectionError,
    DatabaseOperationError,
    DuplicateApplicationError,
    InvalidIdentifierError,
    LifecycleServiceException,
    PostAlreadyFilledError,
    PostNotFoundError,
    PostNotOpenError,
    ValidationError,
)
from app_lifecycle.core.metrics import (
    record_auto_decline_failure,
    record_auto_declined,
    record_transition,
)
from app_lifecycle.core.store import DocumentStore
from app_lifecycle.log.logging import logger
from app_lifecycle.models.application import (
    Application,
    ApplicationStatus,
    DeclinedApplication,
)
from app_lifecycle.models.candidate import BaseCandidate
from app_lifecycle.models.notification import (
    AdminNotification,
    NotificationStatus,
    NotificationType,
)
from app_lifecycle.models.post import DEFAULT_POST_TITLE, Post
from app_lifecycle.services.event_publisher import LifecycleEventPublisher
from app_lifecycle.services.notification_sink import NotificationSink
from app_lifecycle.services.state_machine import (
    STATUS_UPDATES,
    TARGETS,
    Transition,
    ensure_transition,
    restored_status,
)

AUTO_DECLINE_REASON = (
    "Another applicant who applied earlier has been approved for [LINK:{post_code}:{title}]. "
    "Unfortunately, we cannot proceed with your application at this time."
)
MANUAL_DECLINE_REASON = "Your application was declined by the post owner."

LINK_MARKER = re.compile(r"\[LINK:([^:\]]*):([^\]]*)\]")

ARCHIVE_AUTO_ONLY = "auto_only"
ARCHIVE_ALL = "all"

WITHDRAWAL_ACTIONS = ("approve", "reject")


def build_auto_decline_reason(post: Post | None) -> str:
    if post is None:
        return AUTO_DECLINE_REASON.format(post_code="", title=DEFAULT_POST_TITLE)
    return AUTO_DECLINE_REASON.format(post_code=post.post_id, title=post.display_title)


def parse_link_markers(text: str) -> list[tuple[str, str]]:
    """
    Extract ``[LINK:<post code>:<display text>]`` markers from a decline reason.

    Returns:
        (post_code, display_text) pairs in order of appearance.
    """
    return [(match.group(1), match.group(2)) for match in LINK_MARKER.finditer(text or "")]


@dataclass
class ApprovalResult:
    """Outcome of a status change; ``auto_declined_count`` is only non-zero for approvals."""

    application: Application
    auto_declined_count: int = 0


@dataclass
class CandidateApplications:
    applications: list[Application] = field(default_factory=list)
    applied_post_ids: list[str] = field(default_factory=list)


@dataclass
class WithdrawalRequest:
    application: Application
    post: Post | None = None


def track_transition(name: str | None = None):
    """
    Decorator that records the outcome of a lifecycle operation and turns driver
    failures into ``DatabaseOperationError``.

    Usage:
        @track_transition("approve")
        async def approve(self, application_id, actor_id):
            ...
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                result = await func(*args, **kwargs)
            except LifecycleServiceException as e:
                if name:
                    record_transition(name, "rejected" if e.status_code < 500 else "error")
                raise
            except ConnectionFailure as e:
                if name:
                    record_transition(name, "error")
                logger.error(
                    "MongoDB unreachable during {operation}: {error}",
                    operation=func.__name__,
                    error=str(e),
                    event_type="lifecycle_database_unavailable",
                )
                raise DatabaseConnectionError() from e
            except PyMongoError as e:
                if name:
                    record_transition(name, "error")
                logger.error(
                    "Database error during {operation}: {error}",
                    operation=func.__name__,
                    error=str(e),
                    event_type="lifecycle_database_error",
                )
                raise DatabaseOperationError(str(e)) from e
            if name:
                record_transition(name)
            return result

        return wrapper

    return decorator


def applicant_forms(candidate_id: str) -> list:
    """
    Values a candidate may be stored as in ``posts.applicants``. New entries are
    strings; posts written before the lifecycle service hold ObjectIds.
    """
    forms: list = [candidate_id]
    if ObjectId.is_valid(candidate_id):
        forms.append(ObjectId(candidate_id))
    return forms


def _object_id(value, field_name: str) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise InvalidIdentifierError(field_name, str(value))


class ApplicationLifecycleService:
    """
    Enforces the allowed status transitions of applications and performs the
    side effects each transition implies.
    """

    def __init__(
        self,
        store: DocumentStore,
        notifications: NotificationSink,
        events: LifecycleEventPublisher | None = None,
        settings: Settings | None = None,
    ):
        self.store = store
        self.notifications = notifications
        self.events = events
        self.settings = settings or default_settings

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @property
    def atomic(self) -> bool:
        return self.settings.lifecycle_atomic_transitions

    @asynccontextmanager
    async def _unit_of_work(self):
        """Transaction when atomic transitions are enabled, otherwise a no-op."""
        context = self.store.transaction() if self.atomic else nullcontext()
        async with context:
            yield

    async def _get_application(self, application_id) -> dict:
        object_id = _object_id(application_id, "application_id")
        document = await self.store.find_one(APPLICATIONS, {"_id": object_id})
        if document is None:
            raise ApplicationNotFoundError(str(application_id))
        return document

    async def _find_post(self, post_ref) -> dict | None:
        """Resolve a post by ObjectId or by its human code (e.g. P-010125-00)."""
        if isinstance(post_ref, ObjectId):
            return await self.store.find_one(POSTS, {"_id": post_ref})
        if ObjectId.is_valid(post_ref):
            document = await self.store.find_one(POSTS, {"_id": ObjectId(post_ref)})
            if document is not None:
                return document
        return await self.store.find_one(POSTS, {"post_id": post_ref})

    async def _require_post(self, post_ref) -> dict:
        document = await self._find_post(post_ref)
        if document is None:
            raise PostNotFoundError(str(post_ref))
        return document

    async def _reload(self, object_id: ObjectId) -> Application:
        document = await self.store.find_one(APPLICATIONS, {"_id": object_id})
        if document is None:
            raise ApplicationNotFoundError(str(object_id))
        return Application.from_document(document)

    async def _conflicting_status(self, object_id: ObjectId, transition: Transition) -> None:
        """
        Re-check a conditional update that matched nothing: the application moved
        (or vanished) between our read and our write.
        """
        document = await self.store.find_one(APPLICATIONS, {"_id": object_id})
        if document is None:
            raise ApplicationNotFoundError(str(object_id))
        ensure_transition(transition, document["status"])

    async def _publish(self, transition: str, application: Application, **extra) -> None:
        if self.events is not None:
            await self.events.publish_transition(transition, application, **extra)

    @staticmethod
    def _declined_record(
        document: dict, reason: str, declined_at: datetime, auto: bool, declined_by: str | None
    ) -> dict:
        record = {key: value for key, value in document.items() if key != "_id"}
        record.update(
            original_application_id=document["_id"],
            status=ApplicationStatus.DECLINED.value,
            declined_at=declined_at,
            decline_reason=reason,
            auto_declined=auto,
            declined_by=declined_by,
            created_at=declined_at,
        )
        return record

    # -------------------------------------------------------------------------
    # Apply
    # -------------------------------------------------------------------------

    @track_transition("apply")
    async def apply(self, post_ref: str, candidate: BaseCandidate) -> Application:
        """
        Create a pending application of ``candidate`` to the post.

        Raises:
            PostNotFoundError: The post does not exist.
            PostNotOpenError: The post no longer accepts applicants.
            DuplicateApplicationError: The candidate already applied to this post.
        """
        post_document = await self._require_post(post_ref)
        post = Post.from_document(post_document)
        if not post.is_open:
            raise PostNotOpenError(post.status)

        candidate_id = candidate.identify()
        existing = await self.store.find_one(
            APPLICATIONS, {"post_id": post_document["_id"], "candidate_id": candidate_id}
        )
        if existing is not None or candidate_id in post.applicants:
            raise DuplicateApplicationError()

        now = datetime.utcnow()
        document = {
            "post_id": post_document["_id"],
            "candidate_id": candidate_id,
            "candidate_role": candidate.role,
            "candidate_name": candidate.display_name(),
            "status": ApplicationStatus.PENDING.value,
            "applied_at": now,
            "updated_at": now,
            "auto_declined": False,
        }

        try:
            async with self._unit_of_work():
                created = await self.store.insert_one(APPLICATIONS, document)
                await self.store.update_one(
                    POSTS,
                    {"_id": post_document["_id"]},
                    {"$addToSet": {"applicants": candidate_id}, "$set": {"updated_at": now}},
                )
        except DuplicateKeyError:
            # Lost the race against a concurrent apply of the same candidate
            raise DuplicateApplicationError()

        application = Application.from_document(created)
        logger.info(
            "Candidate applied to post",
            event_type="application_applied",
            application_id=application.id,
            post_id=application.post_id,
            candidate_id=candidate_id,
            candidate_role=candidate.role,
        )
        await self._publish("applied", application)
        return application

    # -------------------------------------------------------------------------
    # Approve (with auto-decline cascade)
    # -------------------------------------------------------------------------

    @track_transition("approve")
    async def approve(self, application_id: str, actor_id: str | None = None) -> ApprovalResult:
        """
        Approve a pending application and archive every other pending application
        for the same post as auto-declined.

        Raises:
            ApplicationNotFoundError: No such application.
            InvalidTransitionError: The application is not pending.
            PostAlreadyFilledError: Another application for the post is already approved.
        """
        document = await self._get_application(application_id)
        ensure_transition(Transition.APPROVE, document["status"])

        post_document = await self.store.find_one(POSTS, {"_id": document["post_id"]})
        post = Post.from_document(post_document) if post_document else None
        reason = build_auto_decline_reason(post)

        if self.atomic:
            async with self._unit_of_work():
                archived = await self._approve_and_cascade(document, reason, actor_id, best_effort=False)
        else:
            archived = await self._approve_and_cascade(document, reason, actor_id, best_effort=True)

        application = await self._reload(document["_id"])
        record_auto_declined(len(archived))
        logger.info(
            "Application approved",
            event_type="application_approved",
            application_id=application.id,
            post_id=application.post_id,
            auto_declined_count=len(archived),
            actor_id=actor_id,
        )

        await self._publish(
            "approved",
            application,
            previous_status=document["status"],
            auto_declined_count=len(archived),
        )
        for record in archived:
            await self._publish(
                "auto_declined",
                Application.from_document({**record, "_id": record["original_application_id"]}),
                previous_status=ApplicationStatus.PENDING.value,
                decline_reason=reason,
            )

        return ApprovalResult(application=application, auto_declined_count=len(archived))

    async def _approve_and_cascade(
        self, document: dict, reason: str, actor_id: str | None, best_effort: bool
    ) -> list[dict]:
        object_id = document["_id"]
        post_id = document["post_id"]
        now = datetime.utcnow()

        winner = await self.store.find_one(
            APPLICATIONS,
            {"post_id": post_id, "status": ApplicationStatus.APPROVED.value, "_id": {"$ne": object_id}},
        )
        if winner is not None:
            raise PostAlreadyFilledError()

        matched = await self.store.update_one(
            APPLICATIONS,
            {"_id": object_id, "status": ApplicationStatus.PENDING.value},
            {
                "$set": {
                    "status": ApplicationStatus.APPROVED.value,
                    "approved_at": now,
                    "approved_by": actor_id,
                    "updated_at": now,
                }
            },
        )
        if not matched:
            await self._conflicting_status(object_id, Transition.APPROVE)

        query = {"post_id": post_id, "_id": {"$ne": object_id}, "status": ApplicationStatus.PENDING.value}
        try:
            siblings = await self.store.find(APPLICATIONS, query, sort=[("applied_at", 1)])
        except PyMongoError as e:
            if not best_effort:
                raise
            self._cascade_failed("Failed to load sibling applications", e, object_id)
            return []

        archived = []
        for sibling in siblings:
            record = self._declined_record(sibling, reason, now, auto=True, declined_by=actor_id)
            try:
                await self.store.insert_one(DECLINED_APPLICATIONS, record)
            except PyMongoError as e:
                if not best_effort:
                    raise
                self._cascade_failed(
                    "Failed to archive auto-declined application", e, object_id, sibling["_id"]
                )
                continue
            archived.append(record)

        if not archived:
            return archived

        archived_ids = [record["original_application_id"] for record in archived]
        try:
            await self.store.delete_many(
                APPLICATIONS, {"_id": {"$in": archived_ids}, "status": ApplicationStatus.PENDING.value}
            )
        except PyMongoError as e:
            if not best_effort:
                raise
            for archived_id in archived_ids:
                self._cascade_failed(
                    "Failed to remove auto-declined application", e, object_id, archived_id
                )
            # The siblings are still pending, so their archive copies must go
            try:
                await self.store.delete_many(
                    DECLINED_APPLICATIONS, {"original_application_id": {"$in": archived_ids}}
                )
            except PyMongoError as cleanup_error:
                logger.error(
                    "Archived copies left behind for applications still pending",
                    event_type="auto_decline_cleanup_failed",
                    application_ids=[str(archived_id) for archived_id in archived_ids],
                    error=str(cleanup_error),
                )
            return []

        for archived_id in archived_ids:
            logger.info(
                "Application auto-declined",
                event_type="application_auto_declined",
                application_id=str(archived_id),
                post_id=str(post_id),
                approved_application_id=str(object_id),
            )
        return archived

    @staticmethod
    def _cascade_failed(message: str, error: Exception, approved_id, application_id=None) -> None:
        record_auto_decline_failure()
        logger.error(
            message,
            event_type="auto_decline_failed",
            application_id=str(application_id) if application_id is not None else None,
            approved_application_id=str(approved_id),
            error=str(error),
        )

    # -------------------------------------------------------------------------
    # Direct decisions
    # -------------------------------------------------------------------------

    @track_transition("decline")
    async def decline(
        self, application_id: str, actor_id: str | None = None, reason: str | None = None
    ) -> Application:
        """
        Decline a pending application.

        With the ``all`` archive policy the application is moved to
        ``declined_applications`` like an auto-decline (``auto_declined`` false);
        with ``auto_only`` it stays in the active collection as ``declined``.
        """
        document = await self._get_application(application_id)
        ensure_transition(Transition.DECLINE, document["status"])
        object_id = document["_id"]
        now = datetime.utcnow()

        changes = {
            "status": ApplicationStatus.DECLINED.value,
            "declined_at": now,
            "declined_by": actor_id,
            "auto_declined": False,
            "updated_at": now,
        }
        if reason:
            changes["decline_reason"] = reason

        archive = self.settings.lifecycle_decline_archive_policy == ARCHIVE_ALL
        async with self._unit_of_work():
            matched = await self.store.update_one(
                APPLICATIONS,
                {"_id": object_id, "status": ApplicationStatus.PENDING.value},
                {"$set": changes},
            )
            if not matched:
                await self._conflicting_status(object_id, Transition.DECLINE)

            if archive:
                declined = {**document, **changes}
                record = self._declined_record(
                    declined, reason or MANUAL_DECLINE_REASON, now, auto=False, declined_by=actor_id
                )
                await self.store.insert_one(DECLINED_APPLICATIONS, record)
                await self.store.delete_many(APPLICATIONS, {"_id": object_id})

        if archive:
            application = Application.from_document({**record, "_id": object_id})
        else:
            application = await self._reload(object_id)

        logger.info(
            "Application declined",
            event_type="application_declined",
            application_id=str(object_id),
            post_id=str(document["post_id"]),
            archived=archive,
            actor_id=actor_id,
        )
        await self._publish("declined", application, previous_status=document["status"])
        return application

    @track_transition("status_update")
    async def update_status(self, application_id: str, status: str, actor_id: str | None = None) -> ApprovalResult:
        """
        Set an application's status as the post owner.

        ``approved`` and ``declined`` go through ``approve`` / ``decline``;
        ``pending``, ``accepted`` and ``rejected`` are set directly once the state
        machine allows them.
        """
        try:
            target = ApplicationStatus(status)
        except ValueError:
            raise ValidationError("Invalid status value")
        transition = STATUS_UPDATES.get(target)
        if transition is None:
            raise ValidationError("Invalid status value")

        if transition == Transition.APPROVE:
            return await self.approve(application_id, actor_id)
        if transition == Transition.DECLINE:
            return ApprovalResult(application=await self.decline(application_id, actor_id))

        document = await self._get_application(application_id)
        ensure_transition(transition, document["status"])
        object_id = document["_id"]
        now = datetime.utcnow()

        update: dict = {"$set": {"status": target.value, "updated_at": now}}
        if target == ApplicationStatus.ACCEPTED:
            update["$set"].update(accepted_at=now, accepted_by=actor_id)
        elif target == ApplicationStatus.REJECTED:
            update["$set"].update(rejected_at=now, rejected_by=actor_id)
        else:
            update["$unset"] = {"declined_at": "", "declined_by": "", "decline_reason": ""}

        matched = await self.store.update_one(
            APPLICATIONS, {"_id": object_id, "status": document["status"]}, update
        )
        if not matched:
            await self._conflicting_status(object_id, transition)

        application = await self._reload(object_id)
        logger.info(
            "Application status updated",
            event_type=f"application_{TARGETS[transition].value}",
            application_id=application.id,
            previous_status=document["status"],
            status=application.status,
            actor_id=actor_id,
        )
        await self._publish(target.value, application, previous_status=document["status"])
        return ApprovalResult(application=application)

    # -------------------------------------------------------------------------
    # Withdrawal
    # -------------------------------------------------------------------------

    @track_transition("request_withdrawal")
    async def request_withdrawal(
        self, application_id: str, candidate: BaseCandidate, note: str | None = None
    ) -> Application:
        """
        Ask an administrator to withdraw the candidate's application.

        Raises:
            ApplicationOwnershipError: The application belongs to someone else.
            ApplicationAlreadyWithdrawnError, WithdrawalAlreadyRequestedError,
            CompletedApplicationWithdrawalError: The application cannot be withdrawn.
        """
        note = (note or "").strip()
        if len(note) > self.settings.withdrawal_note_max_length:
            raise ValidationError(
                f"Withdrawal note must be at most {self.settings.withdrawal_note_max_length} characters"
            )

        document = await self._get_application(application_id)
        if str(document["candidate_id"]) != candidate.identify():
            logger.warning(
                "Candidate attempted to withdraw another candidate's application",
                event_type="withdrawal_ownership_denied",
                application_id=str(document["_id"]),
                candidate_id=candidate.identify(),
            )
            raise ApplicationOwnershipError()

        current = document["status"]
        ensure_transition(Transition.REQUEST_WITHDRAWAL, current)
        object_id = document["_id"]
        now = datetime.utcnow()

        async with self._unit_of_work():
            matched = await self.store.update_one(
                APPLICATIONS,
                {"_id": object_id, "status": current},
                {
                    "$set": {
                        "status": ApplicationStatus.WITHDRAWAL_REQUESTED.value,
                        "status_before_withdrawal": current,
                        "withdrawal_requested_at": now,
                        "withdrawal_requested_by": candidate.public_id(),
                        "withdrawal_note": note,
                        "updated_at": now,
                    }
                },
            )
            if not matched:
                await self._conflicting_status(object_id, Transition.REQUEST_WITHDRAWAL)

            await self.notifications.create_notification(
                AdminNotification(
                    type=NotificationType.WITHDRAWAL_REQUEST,
                    application_id=str(object_id),
                    candidate_id=candidate.identify(),
                    candidate_role=candidate.role,
                    candidate_name=candidate.display_name(),
                    candidate_custom_id=candidate.public_id(),
                    post_id=str(document["post_id"]),
                    withdrawal_note=note,
                    status=NotificationStatus.PENDING,
                    requested_at=now,
                    read=False,
                    created_at=now,
                )
            )

        application = await self._reload(object_id)
        logger.info(
            "Withdrawal requested",
            event_type="withdrawal_requested",
            application_id=application.id,
            candidate_id=candidate.identify(),
            previous_status=current,
        )
        await self._publish("withdrawal_requested", application, previous_status=current)
        return application

    @track_transition("approve_withdrawal")
    async def approve_withdrawal(self, application_id: str, admin_id: str) -> Application:
        """
        Mark the application withdrawn and remove the candidate from the post's applicants.
        """
        document = await self._get_application(application_id)
        ensure_transition(Transition.APPROVE_WITHDRAWAL, document["status"])
        object_id = document["_id"]
        now = datetime.utcnow()

        async with self._unit_of_work():
            matched = await self.store.update_one(
                APPLICATIONS,
                {"_id": object_id, "status": ApplicationStatus.WITHDRAWAL_REQUESTED.value},
                {
                    "$set": {
                        "status": ApplicationStatus.WITHDRAWN.value,
                        "withdrawal_approved_at": now,
                        "withdrawal_approved_by": admin_id,
                        "updated_at": now,
                    }
                },
            )
            if not matched:
                await self._conflicting_status(object_id, Transition.APPROVE_WITHDRAWAL)

            # Removing an id that is already absent is a no-op
            await self.store.update_one(
                POSTS,
                {"_id": document["post_id"]},
                {
                    "$pull": {"applicants": {"$in": applicant_forms(document["candidate_id"])}},
                    "$set": {"updated_at": now},
                },
            )
            await self.notifications.update_notification(
                {
                    "application_id": object_id,
                    "type": NotificationType.WITHDRAWAL_REQUEST.value,
                    "status": NotificationStatus.PENDING.value,
                },
                {
                    "status": NotificationStatus.APPROVED.value,
                    "processed_at": now,
                    "processed_by": admin_id,
                },
            )

        application = await self._reload(object_id)
        logger.info(
            "Withdrawal approved",
            event_type="withdrawal_approved",
            application_id=application.id,
            post_id=application.post_id,
            admin_id=admin_id,
        )
        await self._publish(
            "withdrawal_approved", application, previous_status=ApplicationStatus.WITHDRAWAL_REQUESTED.value
        )
        return application

    @track_transition("decline_withdrawal")
    async def decline_withdrawal(
        self, application_id: str, admin_id: str, admin_note: str | None = None
    ) -> Application:
        """
        Reject a withdrawal request, restoring the status the application had
        when the request was made.
        """
        if admin_note and len(admin_note) > self.settings.withdrawal_note_max_length:
            raise ValidationError(
                f"Admin note must be at most {self.settings.withdrawal_note_max_length} characters"
            )

        document = await self._get_application(application_id)
        ensure_transition(Transition.DECLINE_WITHDRAWAL, document["status"])
        object_id = document["_id"]
        restored = restored_status(document.get("status_before_withdrawal"))
        now = datetime.utcnow()

        notification_changes = {
            "status": NotificationStatus.DECLINED.value,
            "processed_at": now,
            "processed_by": admin_id,
        }
        if admin_note:
            notification_changes["admin_note"] = admin_note

        async with self._unit_of_work():
            matched = await self.store.update_one(
                APPLICATIONS,
                {"_id": object_id, "status": ApplicationStatus.WITHDRAWAL_REQUESTED.value},
                {
                    "$set": {
                        "status": restored.value,
                        "withdrawal_rejected_at": now,
                        "withdrawal_rejected_by": admin_id,
                        "updated_at": now,
                    },
                    "$unset": {
                        "withdrawal_requested_at": "",
                        "withdrawal_requested_by": "",
                        "withdrawal_note": "",
                        "status_before_withdrawal": "",
                    },
                },
            )
            if not matched:
                await self._conflicting_status(object_id, Transition.DECLINE_WITHDRAWAL)

            await self.notifications.update_notification(
                {
                    "application_id": object_id,
                    "type": NotificationType.WITHDRAWAL_REQUEST.value,
                    "status": NotificationStatus.PENDING.value,
                },
                notification_changes,
            )

        application = await self._reload(object_id)
        logger.info(
            "Withdrawal declined",
            event_type="withdrawal_declined",
            application_id=application.id,
            restored_status=restored.value,
            admin_id=admin_id,
        )
        await self._publish(
            "withdrawal_declined", application, previous_status=ApplicationStatus.WITHDRAWAL_REQUESTED.value
        )
        return application

    async def decide_withdrawal(
        self, application_id: str, action: str, admin_id: str, admin_note: str | None = None
    ) -> Application:
        if action == "approve":
            return await self.approve_withdrawal(application_id, admin_id)
        if action == "reject":
            return await self.decline_withdrawal(application_id, admin_id, admin_note)
        raise ValidationError('Invalid action. Must be "approve" or "reject"')

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @track_transition()
    async def list_withdrawal_requests(self) -> list[WithdrawalRequest]:
        """Pending withdrawal requests, most recent first, with their posts."""
        documents = await self.store.find(
            APPLICATIONS,
            {"status": ApplicationStatus.WITHDRAWAL_REQUESTED.value},
            sort=[("withdrawal_requested_at", -1)],
        )
        post_ids = list({document["post_id"] for document in documents})
        posts = {}
        if post_ids:
            for post_document in await self.store.find(POSTS, {"_id": {"$in": post_ids}}):
                posts[post_document["_id"]] = Post.from_document(post_document)

        return [
            WithdrawalRequest(
                application=Application.from_document(document),
                post=posts.get(document["post_id"]),
            )
            for document in documents
        ]

    @track_transition()
    async def list_candidate_applications(self, candidate: BaseCandidate) -> CandidateApplications:
        documents = await self.store.find(
            APPLICATIONS, {"candidate_id": candidate.identify()}, sort=[("applied_at", -1)]
        )
        applications = [Application.from_document(document) for document in documents]
        return CandidateApplications(
            applications=applications,
            applied_post_ids=[application.post_id for application in applications],
        )

    @track_transition()
    async def list_post_applications(self, post_ref: str) -> list[Application]:
        """Active applications for a post, earliest first."""
        post_document = await self._require_post(post_ref)
        documents = await self.store.find(
            APPLICATIONS, {"post_id": post_document["_id"]}, sort=[("applied_at", 1)]
        )
        return [Application.from_document(document) for document in documents]

    @track_transition()
    async def list_declined_applications(
        self, candidate_id: str | None = None, post_ref: str | None = None
    ) -> list[DeclinedApplication]:
        query: dict = {}
        if candidate_id is not None:
            query["candidate_id"] = candidate_id
        if post_ref is not None:
            query["post_id"] = (await self._require_post(post_ref))["_id"]
        documents = await self.store.find(DECLINED_APPLICATIONS, query, sort=[("declined_at", -1)])
        return [DeclinedApplication.from_document(document) for document in documents]
