"""
Recurrence expansion engine.

TaskPlanner owns the ordered collection of task templates for one application
session. Daily templates are never stored per day: tasks_for_date() builds a
TaskInstance for each requested date on the fly, taking its completion state
from the template's completed_occurrences map.
"""
import logging
import uuid
from datetime import date, datetime, time, timedelta
from typing import Literal, Optional, Protocol, Union

from models import (
    DaySummary,
    ScheduledTask,
    TaskCreate,
    TaskInstance,
    TaskTemplate,
    TaskUpdate,
    TimelineSuggestion,
    to_local_naive,
)

logger = logging.getLogger(__name__)

SUGGESTION_ERROR_TIMELINE = "Error fetching suggestion."
SUGGESTION_ERROR_REASONING = "Could not connect to AI service."
HISTORY_SAMPLE_SIZE = 3

# Update fields that may be cleared by explicitly sending null
_CLEARABLE_FIELDS = {"suggested_timeline", "estimated_duration", "reasoning"}

StatusFilter = Literal["all", "pending", "completed"]
PriorityFilter = Literal["all", "low", "medium", "high"]


class TaskStorage(Protocol):
    def load_all(self) -> list[TaskTemplate]: ...

    def save_all(self, templates: list[TaskTemplate]) -> None: ...


class Suggester(Protocol):
    async def suggest(self, task_description: str, user_history: str) -> TimelineSuggestion: ...


def occurrence_key(value: Union[date, datetime, str]) -> str:
    """Normalize a date, datetime or ISO string to the YYYY-MM-DD occurrence key."""
    if isinstance(value, str):
        # fromisoformat only accepts a trailing Z from 3.11 on
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        value = to_local_naive(value).date()
    return value.isoformat()


def expand_for_date(template: TaskTemplate, day: date) -> Optional[ScheduledTask]:
    """
    The entry a template contributes to the given day, or None.

    Daily templates yield an instance for every day on or after their anchor
    date, at the template's time-of-day. Non-recurring templates only show up
    on the exact day they are due.
    """
    if template.is_archived:
        return None

    anchor = template.due_date
    if template.recurrence == "daily":
        if anchor.date() > day:
            return None
        fields = template.model_dump(exclude={"kind", "is_recurring_instance"})
        fields.update(
            due_date=datetime.combine(day, time(anchor.hour, anchor.minute)),
            is_completed=template.completed_occurrences.get(occurrence_key(day), False),
            instance_date=day,
            original_task_id=template.id,
        )
        return TaskInstance(**fields)

    if anchor.date() == day:
        return template
    return None


def filter_tasks(
    entries: list[ScheduledTask],
    priority: PriorityFilter = "all",
    status: StatusFilter = "all",
) -> list[ScheduledTask]:
    """Apply the list view's priority/status filters and sort by due time."""
    result = [
        entry for entry in entries
        if (priority == "all" or entry.priority == priority)
        and (status == "all" or entry.is_completed == (status == "completed"))
    ]
    return sorted(result, key=lambda entry: entry.due_date)


class TaskPlanner:
    """
    Session state container for task templates.

    Loaded once from storage at construction and written back after every
    mutation. Mutations on an unknown id change nothing and return None.
    """

    def __init__(self, storage: TaskStorage, suggester: Optional[Suggester] = None):
        self.storage = storage
        self.suggester = suggester
        self._templates: list[TaskTemplate] = self._load()

    def _load(self) -> list[TaskTemplate]:
        try:
            templates = list(self.storage.load_all() or [])
        except Exception:
            logger.exception("Failed to load tasks, starting with an empty list")
            return []
        logger.info("Loaded %d task templates", len(templates))
        return templates

    def _persist(self) -> None:
        try:
            self.storage.save_all(list(self._templates))
        except Exception:
            logger.exception("Failed to save tasks")

    def flush(self) -> None:
        """Write the current collection to storage (used on shutdown)."""
        self._persist()

    def _index_of(self, template_id: str) -> Optional[int]:
        for i, template in enumerate(self._templates):
            if template.id == template_id:
                return i
        return None

    def _replace(self, template_id: str, **changes) -> Optional[TaskTemplate]:
        """Swap in a modified copy of the template. Never mutates the stored object."""
        i = self._index_of(template_id)
        if i is None:
            logger.debug("Task %s not found", template_id)
            return None
        updated = self._templates[i].model_copy(update=changes)
        self._templates[i] = updated
        self._persist()
        return updated

    # Reads
    @property
    def templates(self) -> list[TaskTemplate]:
        """Non-archived templates."""
        return [t for t in self._templates if not t.is_archived]

    @property
    def all_templates(self) -> list[TaskTemplate]:
        return list(self._templates)

    def get_template(self, template_id: str) -> Optional[TaskTemplate]:
        return next((t for t in self._templates if t.id == template_id and not t.is_archived), None)

    def tasks_for_date(self, day: Union[date, datetime]) -> list[ScheduledTask]:
        """Entries for one calendar date, unordered."""
        if isinstance(day, datetime):
            day = to_local_naive(day).date()
        entries = []
        for template in self._templates:
            entry = expand_for_date(template, day)
            if entry is not None:
                entries.append(entry)
        return entries

    def tasks_for_today(self, now: Optional[datetime] = None) -> list[ScheduledTask]:
        return self.tasks_for_date((now or datetime.now()).date())

    def tasks_for_tomorrow(self, now: Optional[datetime] = None) -> list[ScheduledTask]:
        return self.tasks_for_date((now or datetime.now()).date() + timedelta(days=1))

    def summarize_day(self, day: date) -> DaySummary:
        entries = filter_tasks(self.tasks_for_date(day))
        return DaySummary(
            day=day,
            total=len(entries),
            pending=[e for e in entries if not e.is_completed],
            completed=[e for e in entries if e.is_completed],
        )

    # Mutations
    def create_template(self, task: TaskCreate, due_date: Optional[datetime] = None) -> TaskTemplate:
        """Add a new template at the front of the collection."""
        due = due_date or task.due_date
        if due is None:
            raise ValueError("due_date is required")
        template = TaskTemplate(
            id=str(uuid.uuid4()),
            title=task.title,
            description=task.description,
            due_date=due,
            priority=task.priority,
            recurrence=task.recurrence,
            is_completed=False,
            is_archived=False,
            completed_occurrences={},
            created_at=datetime.now(),
        )
        self._templates.insert(0, template)
        self._persist()
        logger.info("Created task %s (%s)", template.id, template.recurrence)
        return template

    def update_template(self, template_id: str, patch: TaskUpdate) -> Optional[TaskTemplate]:
        changes = {
            field: value
            for field, value in patch.model_dump(exclude_unset=True).items()
            if value is not None or field in _CLEARABLE_FIELDS
        }
        return self._replace(template_id, **changes)

    def toggle_completion(
        self,
        template_id: str,
        instance_date: Union[date, datetime, str, None] = None,
    ) -> Optional[TaskTemplate]:
        """
        Flip completion for a template, or for one day of a daily template.

        Daily templates keep a separate flag per date so completing one day
        never affects another. The template's own is_completed is used when
        the task doesn't recur or no date is given.
        """
        i = self._index_of(template_id)
        if i is None:
            return None
        template = self._templates[i]
        if template.recurrence == "daily" and instance_date is not None:
            key = occurrence_key(instance_date)
            occurrences = dict(template.completed_occurrences)
            occurrences[key] = not occurrences.get(key, False)
            return self._replace(template_id, completed_occurrences=occurrences)
        return self._replace(template_id, is_completed=not template.is_completed)

    def archive(self, template_id: str) -> Optional[TaskTemplate]:
        return self._replace(template_id, is_archived=True)

    # Suggestions
    def _user_history(self) -> str:
        history = "User is planning tasks. "
        active = self.templates[:HISTORY_SAMPLE_SIZE]
        if active:
            sample = ", ".join(f"{t.title} (Priority: {t.priority})" for t in active)
            history += f"Current active tasks include: {sample}."
        else:
            history += "No prior active task data available for this session."
        return history

    async def fetch_suggestion(self, template_id: str) -> Optional[TaskTemplate]:
        """
        Ask the suggestion service about a template and store the answer on it.

        Pass the template id (an instance's original_task_id), not an
        instance. Failures are stored as a fixed error timeline instead of
        raising. The answer is applied to whatever the template looks like
        when it arrives; there is no locking against concurrent edits.
        """
        task = next((t for t in self._templates if t.id == template_id), None)
        if task is None:
            return None

        task_description = (
            f"{task.title}. Details: {task.description}. Priority: {task.priority}. "
            f"Original due date: {task.due_date.date().isoformat()}"
        )
        try:
            if self.suggester is None:
                raise RuntimeError("No suggestion service configured")
            result = await self.suggester.suggest(task_description, self._user_history())
        except Exception:
            logger.exception("Error fetching AI timeline suggestion for %s", template_id)
            return self._replace(
                template_id,
                suggested_timeline=SUGGESTION_ERROR_TIMELINE,
                estimated_duration=None,
                reasoning=SUGGESTION_ERROR_REASONING,
            )

        return self._replace(
            template_id,
            suggested_timeline=result.suggested_timeline,
            estimated_duration=result.estimated_duration,
            reasoning=result.reasoning,
        )
