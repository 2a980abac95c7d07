"""SQLModel database models for the productivity app."""

from uuid import uuid4

from sqlmodel import Field, Index, SQLModel

from zenith.utils import get_current_timestamp


def _new_id() -> str:
    return str(uuid4())


class MindFlowItem(SQLModel, table=True):
    """Primary item row (tasks, notes, ideas, reminders, finance, meetings).

    Most columns are nullable on purpose: the validator reports rows that
    are missing required values instead of the database rejecting them.
    """

    __tablename__ = "mind_flow_items"

    id: str = Field(default_factory=_new_id, primary_key=True)
    user_id: str | None = Field(default=None, index=True)
    title: str | None = Field(default=None)
    item_type: str | None = Field(default=None)
    completed: bool | None = Field(default=False)
    summary: str | None = Field(default=None)
    due_date_iso: str | None = Field(default=None, description="ISO8601 due date")
    created_at: str | None = Field(
        default_factory=get_current_timestamp, description="ISO8601 datetime"
    )
    updated_at: str | None = Field(default=None, description="ISO8601 datetime")
    is_generating_subtasks: bool | None = Field(default=False)

    # JSON encoded columns
    chat_history: str | None = Field(default="[]")
    transcript: str | None = Field(default="[]")
    meeting_details: str | None = Field(default=None)

    # Finance columns
    amount: float | None = Field(default=None)
    transaction_type: str | None = Field(default=None)

    __table_args__ = (
        Index("idx_items_user_created", "user_id", "created_at"),
        Index("idx_items_type", "item_type"),
    )


class Subtask(SQLModel, table=True):
    """Child record of an item.

    ``parent_item_id`` is not a foreign key so rows can outlive their parent;
    maintenance finds and removes those orphans.
    """

    __tablename__ = "subtasks"

    id: str = Field(default_factory=_new_id, primary_key=True)
    parent_item_id: str | None = Field(default=None, index=True)
    title: str | None = Field(default=None)
    completed: bool = Field(default=False)
    created_at: str = Field(default_factory=get_current_timestamp)
