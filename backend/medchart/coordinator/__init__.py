from .aggregate import AggregateCoordinator
from .save_queue import SaveQueue, SaveStatus, SaveTask

__all__ = ['AggregateCoordinator', 'SaveQueue', 'SaveStatus', 'SaveTask']
