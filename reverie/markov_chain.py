import random
import typing


T = typing.TypeVar("T")

Matrix = typing.List[typing.List[float]]

RESET_STATE = -1
ROW_TOLERANCE = 1e-6


def weighted_index (weights: typing.Sequence[float], rng: random.Random) -> int:

	"""
	Return an index chosen with probability proportional to its weight.
	"""

	if not weights:
		raise ValueError("Weights cannot be empty")

	if any(w < 0 for w in weights):
		raise ValueError("Weights cannot be negative")

	total = float(sum(weights))

	if total <= 0:
		raise ValueError("Total weight must be positive")

	roll = rng.random() * total
	cumulative = 0.0

	for index, weight in enumerate(weights):
		cumulative += weight
		if roll < cumulative:
			return index

	# Float rounding can leave the roll unmatched; the last positive weight wins.
	for index in range(len(weights) - 1, -1, -1):
		if weights[index] > 0:
			return index

	return 0


def weighted_choice (options: typing.Sequence[typing.Tuple[T, float]], rng: random.Random) -> T:

	"""
	Choose one value from a list of ``(value, weight)`` pairs.
	"""

	if not options:
		raise ValueError("Options cannot be empty")

	return options[weighted_index([weight for _, weight in options], rng)][0]


def random_in_range (low: float, high: float, rng: random.Random) -> float:

	"""
	Return a uniform value in ``[low, high)``.
	"""

	return low + rng.random() * (high - low)


def validate_matrix (matrix: Matrix) -> None:

	"""
	Check that a transition matrix is square, with entries in [0, 1] and rows summing to 1.
	"""

	size = len(matrix)

	if size == 0:
		raise ValueError("Transition matrix cannot be empty")

	for index, row in enumerate(matrix):

		if len(row) != size:
			raise ValueError(f"Transition matrix row {index} has {len(row)} entries, expected {size}")

		if any(p < 0 or p > 1 for p in row):
			raise ValueError(f"Transition matrix row {index} has entries outside [0, 1]")

		if abs(sum(row) - 1.0) > ROW_TOLERANCE:
			raise ValueError(f"Transition matrix row {index} sums to {sum(row):.6f}, expected 1")


def resize_matrix (matrix: Matrix, size: int) -> Matrix:

	"""Fit a transition matrix to a scale with a different number of degrees.

	Rows and columns wrap modulo the source size (so a 12-degree chromatic
	scale reuses the 7-degree melodic tendencies) and every row is
	renormalised.  A row left with no weight becomes uniform.
	"""

	if size <= 0:
		raise ValueError("Matrix size must be positive")

	source_size = len(matrix)

	if size == source_size:
		return [list(row) for row in matrix]

	resized: Matrix = []

	for i in range(size):

		source_row = matrix[i % source_size]
		row = [source_row[j % source_size] for j in range(size)]
		total = sum(row)

		if total <= 0:
			resized.append([1.0 / size] * size)
		else:
			resized.append([p / total for p in row])

	return resized


class MarkovChain:

	"""
	A Markov chain over scale degrees driven by a row-stochastic matrix.

	With ``anchor_probability`` (and always after a reset) the chain returns
	to degree 0, the root, so phrases keep a tonal anchor instead of drifting.
	"""

	def __init__ (
		self,
		matrix: Matrix,
		rng: typing.Optional[random.Random] = None,
		anchor_probability: float = 0.2
	) -> None:

		validate_matrix(matrix)

		if anchor_probability < 0 or anchor_probability > 1:
			raise ValueError("Anchor probability must be between 0 and 1")

		self.matrix = matrix
		self.rng = rng or random.Random()
		self.anchor_probability = anchor_probability
		self.state = RESET_STATE


	@property
	def size (self) -> int:

		return len(self.matrix)


	def reset (self) -> None:

		"""
		Forget the current degree; the next step returns the root.
		"""

		self.state = RESET_STATE


	def step (self) -> int:

		"""
		Advance to the next degree and return it.
		"""

		if self.state == RESET_STATE or self.rng.random() < self.anchor_probability:
			self.state = 0
			return self.state

		roll = self.rng.random()
		cumulative = 0.0

		for degree, probability in enumerate(self.matrix[self.state]):
			cumulative += probability
			if cumulative > roll:
				self.state = degree
				return self.state

		self.state = 0

		return self.state
