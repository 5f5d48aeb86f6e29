from app.models.profile import Profile
from app.models.task_solution import TaskSolution, SolutionStatus

__all__ = ["Profile", "TaskSolution", "SolutionStatus"]
