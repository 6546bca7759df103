from contextlib import asynccontextmanager
from datetime import date, datetime, time, timedelta
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

import config
from database import SqliteTaskStorage, get_user_settings, init_db, save_user_settings
from logging_setup import setup_logging
from models import (
    DaySummary,
    ScheduledTask,
    TaskCreate,
    TaskTemplate,
    TaskUpdate,
    ToggleRequest,
    UserSettings,
    UserSettingsUpdate,
)
from planner import PriorityFilter, StatusFilter, TaskPlanner, filter_tasks
from suggest import TimelineSuggester


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    init_db()
    app.state.planner = TaskPlanner(SqliteTaskStorage(), TimelineSuggester())
    yield
    # Shutdown
    app.state.planner.flush()


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_planner(request: Request) -> TaskPlanner:
    return request.app.state.planner


def default_due_date(now: Optional[datetime] = None) -> datetime:
    """Tomorrow at the user's default task time."""
    hours, minutes = map(int, get_user_settings().default_task_time.split(":"))
    tomorrow = (now or datetime.now()).date() + timedelta(days=1)
    return datetime.combine(tomorrow, time(hours, minutes))


def _found(template: Optional[TaskTemplate]) -> TaskTemplate:
    if template is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return template


@app.get("/tasks")
def get_tasks(request: Request) -> list[TaskTemplate]:
    return get_planner(request).templates


@app.post("/tasks")
def create_task(request: Request, task_data: TaskCreate) -> TaskTemplate:
    due_date = task_data.due_date or default_due_date()
    return get_planner(request).create_template(task_data, due_date=due_date)


@app.get("/tasks/for-date")
def get_tasks_for_date(
    request: Request,
    date: date,
    priority: PriorityFilter = "all",
    status: StatusFilter = "all",
) -> list[ScheduledTask]:
    """Tasks for one day's view, daily templates expanded, sorted by due time."""
    return filter_tasks(get_planner(request).tasks_for_date(date), priority, status)


@app.get("/tasks/today")
def get_tasks_for_today(
    request: Request,
    priority: PriorityFilter = "all",
    status: StatusFilter = "all",
) -> list[ScheduledTask]:
    return filter_tasks(get_planner(request).tasks_for_today(), priority, status)


@app.get("/tasks/tomorrow")
def get_tasks_for_tomorrow(
    request: Request,
    priority: PriorityFilter = "all",
    status: StatusFilter = "all",
) -> list[ScheduledTask]:
    return filter_tasks(get_planner(request).tasks_for_tomorrow(), priority, status)


@app.get("/tasks/{task_id}")
def get_task(request: Request, task_id: str) -> TaskTemplate:
    return _found(get_planner(request).get_template(task_id))


@app.patch("/tasks/{task_id}")
def update_task(request: Request, task_id: str, task_data: TaskUpdate) -> TaskTemplate:
    return _found(get_planner(request).update_template(task_id, task_data))


@app.post("/tasks/{task_id}/toggle")
def toggle_task(request: Request, task_id: str, toggle: Optional[ToggleRequest] = None) -> TaskTemplate:
    """Flip completion. Send instance_date to toggle one day of a daily task."""
    instance_date = toggle.instance_date if toggle else None
    return _found(get_planner(request).toggle_completion(task_id, instance_date))


@app.post("/tasks/{task_id}/archive")
def archive_task(request: Request, task_id: str) -> TaskTemplate:
    return _found(get_planner(request).archive(task_id))


@app.post("/tasks/{task_id}/suggestion")
async def suggest_timeline(request: Request, task_id: str) -> TaskTemplate:
    """Ask Claude for a timeline. A failed call still returns 200 with the error text stored on the task."""
    return _found(await get_planner(request).fetch_suggestion(task_id))


@app.get("/summary")
def get_summary(request: Request, date: Optional[date] = None) -> DaySummary:
    return get_planner(request).summarize_day(date or datetime.now().date())


@app.get("/settings")
def get_settings() -> UserSettings:
    return get_user_settings()


@app.patch("/settings")
def update_settings(settings_data: UserSettingsUpdate) -> UserSettings:
    current = get_user_settings()
    updated = current.model_copy(update=settings_data.model_dump(exclude_unset=True, exclude_none=True))
    return save_user_settings(updated)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
