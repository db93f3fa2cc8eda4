"""Box-filter smoothing for authored heightmaps."""

import numpy as np

from worldbin.preprocessing.normalize import check_grid_size

# Offsets of the 3x3 neighbourhood, including the centre cell
_KERNEL_OFFSETS = [(dy, dx) for dy in (-1, 0, 1) for dx in (-1, 0, 1)]


def smooth_altitudes(
    grid: np.ndarray, width: int, height: int, iterations: int = 1
) -> np.ndarray:
    """Apply a 3x3 mean filter to a row-major altitude grid.

    Each cell becomes the mean of itself and its in-bounds neighbours. Cells
    on an edge or corner average over fewer contributors; there is no
    wraparound and no edge replication.

    Args:
        grid: Row-major float altitude grid of length ``width * height``.
        width: Grid width.
        height: Grid height.
        iterations: Number of passes. 0 returns an unchanged copy.

    Returns:
        New float64 grid with the same length; the input is not modified.

    Raises:
        GridSizeMismatchError: If the grid length disagrees with width * height.
        ValueError: If iterations is negative.
    """
    if iterations < 0:
        raise ValueError(f"iterations must be >= 0, got {iterations}")

    values = np.asarray(grid, dtype=np.float64).ravel()
    check_grid_size(values, width, height)

    current = values.reshape((height, width)).copy()
    if current.size == 0:
        return current.ravel()

    # Neighbour counts only depend on the shape
    counts = _window_sum(np.ones_like(current))
    for _ in range(iterations):
        current = _window_sum(current) / counts

    return current.ravel()


def _window_sum(values: np.ndarray) -> np.ndarray:
    """Sum each cell's 3x3 window, treating out-of-bounds cells as absent."""
    height, width = values.shape
    padded = np.pad(values, 1, mode="constant", constant_values=0.0)
    total = np.zeros_like(values)
    for dy, dx in _KERNEL_OFFSETS:
        total += padded[1 + dy : 1 + dy + height, 1 + dx : 1 + dx + width]
    return total
