import math
import time


def now_ms() -> int:
    return int(time.time() * 1000)


def round_half_up(value: float) -> int:
    # matches the dashboard's Math.round: halves go up, also for negatives
    return int(math.floor(value + 0.5))
