from typing import List, Optional

import numpy as np


NP_WINDOW = 30


def normalized_power(powers: List[Optional[float]], window: int = NP_WINDOW) -> int:
    """Compute normalized power from full rolling windows and the 4th-power mean.

    Args:
        powers: sequence of power values (assumed 1Hz sampling, None counts as 0)
        window: rolling average window length in samples (default 30)

    Returns 0 when fewer than ``window`` samples are available.
    """
    if not powers or len(powers) < window:
        return 0
    arr = np.asarray([float(p or 0) for p in powers], dtype=np.float64)
    rolling = np.convolve(arr, np.ones(window) / window, mode='valid')
    mean_fourth = float(np.mean(rolling ** 4))
    return int(round(mean_fourth ** 0.25))
