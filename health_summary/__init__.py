from .models import METRIC_KINDS

__all__ = ["METRIC_ORDER", "__version__"]

__version__ = "0.1.0"

# Wire order of the "metrics" array, independent of fetch completion order
METRIC_ORDER = [kind.value for kind in METRIC_KINDS]
