from datetime import date, datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, computed_field, field_validator

Priority = Literal["low", "medium", "high"]
RecurrenceType = Literal["none", "daily"]  # weekly/monthly not supported yet


def to_local_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Aware datetimes (e.g. JS toISOString() with a Z) become naive local wall-clock time."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


class TaskTemplate(BaseModel):
    """The persisted task definition. Recurring templates expand into instances."""
    kind: Literal["template"] = "template"
    id: str
    title: str
    description: str = ""
    due_date: datetime  # anchor date + time-of-day for daily tasks
    priority: Priority = "medium"
    is_completed: bool = False  # only meaningful when recurrence == "none"
    recurrence: RecurrenceType = "none"
    completed_occurrences: dict[str, bool] = Field(default_factory=dict)  # "YYYY-MM-DD" -> done
    is_archived: bool = False
    created_at: datetime
    suggested_timeline: Optional[str] = None
    estimated_duration: Optional[str] = None
    reasoning: Optional[str] = None

    naive_due_date = field_validator("due_date", "created_at")(to_local_naive)

    @computed_field
    @property
    def is_recurring_instance(self) -> bool:
        return False


class TaskInstance(BaseModel):
    """One day's view of a daily template. Built per query, never stored."""
    kind: Literal["instance"] = "instance"
    id: str
    title: str
    description: str = ""
    due_date: datetime  # instance_date combined with the template's time-of-day
    priority: Priority = "medium"
    is_completed: bool = False  # from the template's completed_occurrences
    recurrence: RecurrenceType = "daily"
    completed_occurrences: dict[str, bool] = Field(default_factory=dict)
    is_archived: bool = False
    created_at: datetime
    suggested_timeline: Optional[str] = None
    estimated_duration: Optional[str] = None
    reasoning: Optional[str] = None
    instance_date: date
    original_task_id: str

    @computed_field
    @property
    def is_recurring_instance(self) -> bool:
        return True


ScheduledTask = Annotated[Union[TaskTemplate, TaskInstance], Field(discriminator="kind")]


class TaskCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    due_date: Optional[datetime] = None  # defaults to tomorrow at the user's default time
    priority: Priority = "medium"
    recurrence: RecurrenceType = "none"

    naive_due_date = field_validator("due_date")(to_local_naive)

class TaskUpdate(BaseModel):
    """Field patches for a template. Only fields that are explicitly set get applied."""
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Optional[Priority] = None
    is_completed: Optional[bool] = None
    recurrence: Optional[RecurrenceType] = None
    completed_occurrences: Optional[dict[str, bool]] = None
    suggested_timeline: Optional[str] = None
    estimated_duration: Optional[str] = None
    reasoning: Optional[str] = None

    naive_due_date = field_validator("due_date")(to_local_naive)

class ToggleRequest(BaseModel):
    instance_date: Optional[date] = None


class TimelineSuggestion(BaseModel):
    suggested_timeline: str
    estimated_duration: str
    reasoning: str


class UserSettings(BaseModel):
    default_task_time: str = Field(default="09:00", pattern=r"^([01]\d|2[0-3]):([0-5]\d)$")  # HH:MM
    enable_email_alerts: bool = False


class UserSettingsUpdate(BaseModel):
    default_task_time: Optional[str] = Field(default=None, pattern=r"^([01]\d|2[0-3]):([0-5]\d)$")
    enable_email_alerts: Optional[bool] = None


class DaySummary(BaseModel):
    day: date
    total: int
    pending: list[ScheduledTask]
    completed: list[ScheduledTask]
