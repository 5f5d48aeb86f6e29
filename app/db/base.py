# app/db/base.py
# Import all models here so Base.metadata sees every table
from app.db.base_class import Base  # noqa
from app.models.profile import Profile  # noqa
from app.models.task_solution import TaskSolution  # noqa
