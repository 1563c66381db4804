"""
Court procedure catalogue and per-user tracking.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from lexcanada.core.errors import AuthorizationError, NotFoundError
from lexcanada.models import (
    CourtProcedure,
    CourtProcedureCategory,
    CourtProcedureStep,
    User,
    UserCourtProcedure,
    UserProcedureChecklistItem,
    UserProcedureDocument,
    UserProcedureNote,
    UserProcedureReminder,
)

logger = logging.getLogger(__name__)

# Personalization item kinds: model and the label used in 404 messages
ITEM_MODELS = {
    "notes": (UserProcedureNote, "Note"),
    "reminders": (UserProcedureReminder, "Reminder"),
    "checklist": (UserProcedureChecklistItem, "Checklist item"),
    "documents": (UserProcedureDocument, "Procedure document"),
}

REQUIRED_PROCEDURE_FIELDS = ("status", "progress", "completed_steps")
NULLABLE_ITEM_FIELDS = ("description", "file_url", "step_id", "related_form_id")


def compute_progress(completed_steps: List[int], total_steps: int) -> int:
    if total_steps <= 0:
        return 0
    done = len(set(completed_steps or []))
    return min(100, round(done * 100 / total_steps))


class CourtProcedureService:
    def __init__(self, db: Session):
        self.db = db

    # Catalogue

    def list_categories(self) -> List[CourtProcedureCategory]:
        return (
            self.db.query(CourtProcedureCategory)
            .filter(CourtProcedureCategory.is_active.is_(True))
            .order_by(CourtProcedureCategory.order, CourtProcedureCategory.id)
            .all()
        )

    def get_category_by_slug(self, slug: str) -> CourtProcedureCategory:
        category = self.db.query(CourtProcedureCategory).filter(CourtProcedureCategory.slug == slug).first()
        if not category:
            raise NotFoundError("Category")
        return category

    def list_procedures(self, category_id: int) -> List[CourtProcedure]:
        return (
            self.db.query(CourtProcedure)
            .filter(CourtProcedure.category_id == category_id, CourtProcedure.is_active.is_(True))
            .order_by(CourtProcedure.name)
            .all()
        )

    def get_procedure(self, procedure_id: int) -> CourtProcedure:
        procedure = self.db.query(CourtProcedure).filter(CourtProcedure.id == procedure_id).first()
        if not procedure:
            raise NotFoundError("Court procedure")
        return procedure

    # User procedures

    def list_user_procedures(self, user_id: int) -> List[UserCourtProcedure]:
        return (
            self.db.query(UserCourtProcedure)
            .filter(UserCourtProcedure.user_id == user_id)
            .order_by(UserCourtProcedure.last_activity_at.desc(), UserCourtProcedure.id.desc())
            .all()
        )

    def get_user_procedure(self, user_procedure_id: int, user: User) -> UserCourtProcedure:
        user_procedure = (
            self.db.query(UserCourtProcedure)
            .filter(UserCourtProcedure.id == user_procedure_id)
            .first()
        )
        if not user_procedure:
            raise NotFoundError("User court procedure")
        if user_procedure.user_id != user.id:
            raise AuthorizationError("You do not have access to this court procedure")
        return user_procedure

    def start_procedure(self, user: User, data: Dict[str, Any]) -> UserCourtProcedure:
        procedure = self.get_procedure(data["procedure_id"])
        first_step = procedure.steps[0] if procedure.steps else None

        user_procedure = UserCourtProcedure(
            user_id=user.id,
            procedure_id=procedure.id,
            title=data.get("title") or procedure.name,
            current_step_id=first_step.id if first_step else None,
            status="in_progress",
            progress=0,
            completed_steps=[],
            case_specific_data=data.get("case_specific_data"),
            expected_completion_date=data.get("expected_completion_date"),
        )
        self.db.add(user_procedure)
        self.db.commit()
        self.db.refresh(user_procedure)
        logger.info(f"User {user.id} started court procedure {procedure.id}")
        return user_procedure

    def update_user_procedure(self, user_procedure_id: int, user: User, changes: Dict[str, Any]) -> UserCourtProcedure:
        user_procedure = self.get_user_procedure(user_procedure_id, user)

        for field, value in changes.items():
            if value is None and field in REQUIRED_PROCEDURE_FIELDS:
                continue
            setattr(user_procedure, field, value)

        if changes.get("completed_steps") is not None:
            step_ids = {
                row.id for row in self.db.query(CourtProcedureStep.id).filter(
                    CourtProcedureStep.procedure_id == user_procedure.procedure_id
                )
            }
            # Ids of steps outside this procedure are dropped
            completed = []
            for step_id in changes["completed_steps"]:
                if step_id in step_ids and step_id not in completed:
                    completed.append(step_id)
            user_procedure.completed_steps = completed
            if "progress" not in changes:
                user_procedure.progress = compute_progress(completed, len(step_ids))

        now = datetime.utcnow()
        if changes.get("status") == "completed":
            user_procedure.progress = 100
            if not user_procedure.completed_at:
                user_procedure.completed_at = now
        user_procedure.last_activity_at = now

        self.db.commit()
        self.db.refresh(user_procedure)
        return user_procedure

    def delete_user_procedure(self, user_procedure_id: int, user: User) -> None:
        user_procedure = self.get_user_procedure(user_procedure_id, user)
        self.db.delete(user_procedure)
        self.db.commit()
        logger.info(f"Deleted user court procedure {user_procedure_id}")

    # Notes, reminders, checklist items and documents

    def list_items(self, kind: str, user_procedure_id: int, user: User) -> List[Any]:
        user_procedure = self.get_user_procedure(user_procedure_id, user)
        model, _ = ITEM_MODELS[kind]
        query = self.db.query(model).filter(model.user_procedure_id == user_procedure.id)
        if kind == "reminders":
            query = query.order_by(model.due_date, model.id)
        else:
            query = query.order_by(model.created_at, model.id)
        return query.all()

    def create_item(self, kind: str, user_procedure_id: int, user: User, data: Dict[str, Any]) -> Any:
        user_procedure = self.get_user_procedure(user_procedure_id, user)
        model, _ = ITEM_MODELS[kind]
        item = model(user_procedure_id=user_procedure.id, **data)
        self.db.add(item)
        user_procedure.last_activity_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(item)
        return item

    def _get_item(self, kind: str, user_procedure_id: int, item_id: int, user: User) -> Any:
        user_procedure = self.get_user_procedure(user_procedure_id, user)
        model, label = ITEM_MODELS[kind]
        item = (
            self.db.query(model)
            .filter(model.id == item_id, model.user_procedure_id == user_procedure.id)
            .first()
        )
        if not item:
            raise NotFoundError(label)
        return item

    def update_item(self, kind: str, user_procedure_id: int, item_id: int, user: User,
                    changes: Dict[str, Any]) -> Any:
        item = self._get_item(kind, user_procedure_id, item_id, user)
        for field, value in changes.items():
            if value is None and field not in NULLABLE_ITEM_FIELDS:
                continue
            setattr(item, field, value)
        item.updated_at = datetime.utcnow()
        item.user_procedure.last_activity_at = item.updated_at
        self.db.commit()
        self.db.refresh(item)
        return item

    def delete_item(self, kind: str, user_procedure_id: int, item_id: int, user: User) -> None:
        item = self._get_item(kind, user_procedure_id, item_id, user)
        self.db.delete(item)
        self.db.commit()

    def upcoming_reminders(self, user_procedure_id: int, user: User, days: int = 7,
                           now: Optional[datetime] = None) -> List[UserProcedureReminder]:
        user_procedure = self.get_user_procedure(user_procedure_id, user)
        now = now or datetime.utcnow()
        return (
            self.db.query(UserProcedureReminder)
            .filter(
                UserProcedureReminder.user_procedure_id == user_procedure.id,
                UserProcedureReminder.is_completed.is_(False),
                UserProcedureReminder.due_date >= now,
                UserProcedureReminder.due_date <= now + timedelta(days=days),
            )
            .order_by(UserProcedureReminder.due_date)
            .all()
        )
