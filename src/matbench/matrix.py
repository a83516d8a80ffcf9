"""Dense row-major matrix storage.

A `Matrix` keeps its elements in one contiguous float64 numpy array of
length ``rows * cols``. Element ``(r, c)`` lives at offset ``r * cols + c``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import numpy as np

from matbench.errors import (
    DimensionMismatchError,
    InvalidParameterError,
    OutOfRangeAccessError,
)


class Matrix:
    """Dense matrix of real numbers in row-major order.

    Attributes:
        rows: Number of rows.
        cols: Number of columns.
        data: Flat float64 array of length ``rows * cols``.
    """

    __slots__ = ("cols", "data", "rows")

    def __init__(self, rows: int, cols: int, data: np.ndarray | None = None) -> None:
        if rows < 0 or cols < 0:
            raise InvalidParameterError(f"Invalid matrix shape {rows}x{cols}")

        if data is None:
            data = np.zeros(rows * cols, dtype=np.float64)
        else:
            data = np.ascontiguousarray(data, dtype=np.float64).reshape(-1)
            if data.size != rows * cols:
                raise InvalidParameterError(
                    f"Matrix {rows}x{cols} needs {rows * cols} elements, got {data.size}"
                )

        self.rows = rows
        self.cols = cols
        self.data = data

    # Constructors

    @classmethod
    def zeros(cls, rows: int, cols: int) -> Matrix:
        """Create a zero-filled matrix."""
        return cls(rows, cols)

    @classmethod
    def random(cls, rows: int, cols: int, seed: int) -> Matrix:
        """Create a matrix of values drawn uniformly from [-1.0, 1.0).

        The same seed always produces the same matrix.
        """
        rng = np.random.default_rng(seed)
        return cls(rows, cols, rng.uniform(-1.0, 1.0, size=rows * cols))

    @classmethod
    def identity(cls, n: int) -> Matrix:
        """Create an n x n identity matrix."""
        return cls(n, n, np.eye(n, dtype=np.float64))

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[float]]) -> Matrix:
        """Create a matrix from a list of equal-length rows."""
        n_rows = len(rows)
        n_cols = len(rows[0]) if n_rows else 0
        for i, row in enumerate(rows):
            if len(row) != n_cols:
                raise InvalidParameterError(
                    f"Row {i} has {len(row)} elements, expected {n_cols}"
                )
        return cls(n_rows, n_cols, np.array(rows, dtype=np.float64))

    @classmethod
    def from_values(cls, rows: int, cols: int, values: Iterable[float]) -> Matrix:
        """Create a matrix from a flat row-major sequence of values."""
        return cls(rows, cols, np.fromiter(values, dtype=np.float64, count=rows * cols))

    @classmethod
    def from_quadrants(
        cls, c11: Matrix, c12: Matrix, c21: Matrix, c22: Matrix
    ) -> Matrix:
        """Assemble a 2h x 2h matrix from four h x h quadrants."""
        half = c11.rows
        grid = np.block(
            [
                [c11.as_array(), c12.as_array()],
                [c21.as_array(), c22.as_array()],
            ]
        )
        return cls(2 * half, 2 * half, grid)

    # Element access

    @property
    def shape(self) -> tuple[int, int]:
        return self.rows, self.cols

    def _offset(self, row: int, col: int) -> int:
        if not (0 <= row < self.rows and 0 <= col < self.cols):
            raise OutOfRangeAccessError(
                f"Index ({row}, {col}) out of range for {self.rows}x{self.cols} matrix"
            )
        return row * self.cols + col

    def get(self, row: int, col: int) -> float:
        return float(self.data[self._offset(row, col)])

    def set(self, row: int, col: int, value: float) -> None:
        self.data[self._offset(row, col)] = value

    def row_band(self, start: int, stop: int) -> np.ndarray:
        """Return a writable flat view over rows [start, stop).

        Distinct, non-overlapping row ranges give non-aliasing views, which
        is how parallel kernels hand each worker its own part of a result.
        """
        if not 0 <= start <= stop <= self.rows:
            raise OutOfRangeAccessError(
                f"Row band [{start}, {stop}) out of range for {self.rows} rows"
            )
        return self.data[start * self.cols : stop * self.cols]

    def as_array(self) -> np.ndarray:
        """Return a 2-D view of the data."""
        return self.data.reshape(self.rows, self.cols)

    def tolist(self) -> list[float]:
        """Return the flat row-major data as Python floats."""
        return self.data.tolist()

    def to_rows(self) -> list[list[float]]:
        return self.as_array().tolist()

    # Elementwise arithmetic (fresh allocations)

    def _check_same_shape(self, other: Matrix, operation: str) -> None:
        if self.shape != other.shape:
            raise DimensionMismatchError(
                f"Cannot {operation} matrices of different shapes",
                self.shape,
                other.shape,
            )

    def add(self, other: Matrix) -> Matrix:
        self._check_same_shape(other, "add")
        return Matrix(self.rows, self.cols, self.data + other.data)

    def subtract(self, other: Matrix) -> Matrix:
        self._check_same_shape(other, "subtract")
        return Matrix(self.rows, self.cols, self.data - other.data)

    def __add__(self, other: Matrix) -> Matrix:
        return self.add(other)

    def __sub__(self, other: Matrix) -> Matrix:
        return self.subtract(other)

    def quadrants(self, half: int) -> tuple[Matrix, Matrix, Matrix, Matrix]:
        """Split into four half x half quadrants (m11, m12, m21, m22).

        Each quadrant is a copy, never a view of this matrix.
        """
        if self.rows != 2 * half or self.cols != 2 * half:
            raise DimensionMismatchError(
                f"Cannot split into {half}x{half} quadrants",
                self.shape,
                (2 * half, 2 * half),
            )
        grid = self.as_array()
        return (
            Matrix(half, half, grid[:half, :half].copy()),
            Matrix(half, half, grid[:half, half:].copy()),
            Matrix(half, half, grid[half:, :half].copy()),
            Matrix(half, half, grid[half:, half:].copy()),
        )

    # Comparison

    def _abs_differences(self, other: Matrix) -> np.ndarray:
        # Identical cells, including matching infinities, differ by 0.0. NaN
        # never equals anything and stays NaN.
        with np.errstate(invalid="ignore"):
            diff = np.abs(self.data - other.data)
        return np.where(self.data == other.data, 0.0, diff)

    def equals_within_tolerance(self, other: Matrix, tolerance: float) -> bool:
        """Check that shapes match and every element differs by at most tolerance.

        Cells holding the same value agree even when that value is infinite.
        """
        if self.shape != other.shape:
            return False
        return bool(np.all(self._abs_differences(other) <= tolerance))

    def max_abs_difference(self, other: Matrix) -> float:
        """Return the largest elementwise absolute difference (NaN if any cell is NaN)."""
        self._check_same_shape(other, "compare")
        if self.data.size == 0:
            return 0.0
        return float(np.max(self._abs_differences(other)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.shape == other.shape and bool(np.array_equal(self.data, other.data))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Matrix({self.rows}x{self.cols})"
