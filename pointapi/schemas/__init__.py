from .points import TransactionType, UserPoint, PointHistory, PointAmountRequest
from .health import HealthCheckResponse
