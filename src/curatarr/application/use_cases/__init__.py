from .cascading_search import CascadingSearchUseCase
from .monitoring_tasks import MonitoringTasks
from .movie_search import MovieSearchUseCase

__all__ = ["CascadingSearchUseCase", "MonitoringTasks", "MovieSearchUseCase"]
