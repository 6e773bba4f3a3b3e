from .classifier import classify
from .presenter import build_chart
from .scheduler import derive_slots

__all__ = ['build_chart', 'classify', 'derive_slots']
