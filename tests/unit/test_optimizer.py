"""
Unit tests for the QuasiNewtonBFGS optimizer.
"""
from typing import Optional

import numpy as np
import pytest

from pyqn.function import DifferentiableFunction
from pyqn.linesearch import LineSearch, LineSearchFletcher86
from pyqn.optimizer import Mode, QuasiNewtonBFGS


def shifted_bowl(x: np.ndarray) -> float:
    """f(x, y) = (x - 3)^2 + (y + 1)^2, minimum 0 at (3, -1)."""
    return (x[0] - 3.0) ** 2 + (x[1] + 1.0) ** 2


def shifted_bowl_gradient(x: np.ndarray) -> np.ndarray:
    return np.array([2.0 * (x[0] - 3.0), 2.0 * (x[1] + 1.0)])


def rosenbrock(x: np.ndarray) -> float:
    return (1.0 - x[0]) ** 2 + 100.0 * (x[1] - x[0] ** 2) ** 2


def rosenbrock_gradient(x: np.ndarray) -> np.ndarray:
    return np.array([
        -2.0 * (1.0 - x[0]) - 400.0 * x[0] * (x[1] - x[0] ** 2),
        200.0 * (x[1] - x[0] ** 2),
    ])


class FailingLineSearch(LineSearch):
    """Line search that terminates immediately without converging."""

    def __init__(self, message: Optional[str] = "line search diverged") -> None:
        self.message = message
        self.n_init = 0

    def set_function(self, function) -> None:
        self.function = function

    def init(self, func_zero, deriv_zero, func_init, init_step, step_min, step_max) -> None:
        self.n_init += 1

    def iterate(self) -> bool:
        return True

    def is_converged(self) -> bool:
        return False

    def get_step(self) -> float:
        return 0.0

    def get_function_value(self) -> float:
        return float("nan")

    def get_failure_message(self) -> Optional[str]:
        return self.message

    def get_name(self) -> str:
        return "FailingLineSearch"


def make_optimizer(
    value_fn=shifted_bowl,
    gradient_fn=shifted_bowl_gradient,
    n: int = 2,
    func_min_value: float = float("-inf"),
    line_search: Optional[LineSearch] = None,
    **kwargs,
) -> QuasiNewtonBFGS:
    """Helper to create an optimizer with an analytic gradient."""
    function = DifferentiableFunction(value_fn, n=n, gradient_fn=gradient_fn)
    if line_search is None:
        line_search = LineSearchFletcher86(ftol=1e-4, gtol=0.9)
    kwargs.setdefault("relative_error_tol", 1e-12)
    kwargs.setdefault("absolute_error_tol", 1e-12)
    return QuasiNewtonBFGS(
        function,
        line_search,
        func_min_value=func_min_value,
        gtol=0.9,
        **kwargs,
    )


def run(optimizer: QuasiNewtonBFGS, max_steps: int = 10000) -> int:
    """Step until termination, returning the number of steps taken."""
    for n_steps in range(1, max_steps + 1):
        if optimizer.step():
            return n_steps
    raise AssertionError("optimizer did not terminate")


# =============================================================================
# Construction
# =============================================================================


class TestConstruction:
    """Tests for constructor validation."""

    def test_negative_relative_tolerance(self) -> None:
        with pytest.raises(ValueError):
            make_optimizer(relative_error_tol=-1)

    def test_negative_absolute_tolerance(self) -> None:
        with pytest.raises(ValueError):
            make_optimizer(absolute_error_tol=-1e-3)

    def test_zero_tolerances_allowed(self) -> None:
        optimizer = make_optimizer(relative_error_tol=0.0, absolute_error_tol=0.0)
        assert optimizer.relative_error_tol == 0.0
        assert optimizer.absolute_error_tol == 0.0

    @pytest.mark.parametrize("gtol", [0.0, -0.5, 1.5])
    def test_invalid_gtol(self, gtol: float) -> None:
        function = DifferentiableFunction(shifted_bowl, n=2, gradient_fn=shifted_bowl_gradient)
        with pytest.raises(ValueError):
            QuasiNewtonBFGS(function, LineSearchFletcher86(), gtol=gtol)

    def test_line_search_receives_function(self) -> None:
        search = FailingLineSearch()
        optimizer = make_optimizer(line_search=search)
        assert search.function is optimizer.function

    def test_get_name(self) -> None:
        assert "QuasiNewtonBFGS" in make_optimizer().get_name()


# =============================================================================
# Initialization
# =============================================================================


class TestInitialize:
    """Tests for initialize() and re-initialization."""

    def test_initial_state(self) -> None:
        optimizer = make_optimizer()
        optimizer.initialize(np.array([0.0, 0.0]))

        assert optimizer.get_mode() is Mode.COMPUTING_DIRECTION
        assert optimizer.get_iterations() == 0
        assert not optimizer.is_converged()
        assert optimizer.get_failure_message() is None
        assert optimizer.get_function_value() == pytest.approx(10.0)
        np.testing.assert_array_equal(optimizer.get_inverse_hessian(), np.eye(2))

    def test_no_gradient_evaluated(self) -> None:
        optimizer = make_optimizer()
        optimizer.initialize(np.array([0.0, 0.0]))
        assert optimizer.function.n_gradient_evals == 0
        assert optimizer.function.n_value_evals == 1

    def test_wrong_length_raises(self) -> None:
        optimizer = make_optimizer()
        with pytest.raises(ValueError):
            optimizer.initialize(np.array([0.0, 0.0, 0.0]))

    def test_initial_point_is_copied(self) -> None:
        optimizer = make_optimizer()
        start = np.array([1.0, 2.0])
        optimizer.initialize(start)
        run(optimizer)
        np.testing.assert_array_equal(start, [1.0, 2.0])

    def test_reinitialize_resets_state(self) -> None:
        optimizer = make_optimizer(line_search=FailingLineSearch("first run failed"))
        optimizer.initialize(np.array([0.0, 0.0]))
        run(optimizer)
        assert optimizer.get_failure_message() == "first run failed"
        assert optimizer.get_iterations() == 1

        optimizer.initialize(np.array([5.0, 5.0]))

        assert optimizer.get_iterations() == 0
        assert not optimizer.is_converged()
        assert optimizer.get_failure_message() is None
        assert optimizer.get_mode() is Mode.COMPUTING_DIRECTION
        np.testing.assert_array_equal(optimizer.get_parameters(), [5.0, 5.0])

    def test_reinitialize_runs_independently(self) -> None:
        optimizer = make_optimizer()
        optimizer.initialize(np.array([0.0, 0.0]))
        run(optimizer)
        first_iterations = optimizer.get_iterations()

        optimizer.initialize(np.array([0.0, 0.0]))
        run(optimizer)

        assert optimizer.is_converged()
        assert optimizer.get_iterations() == first_iterations

    def test_custom_initial_inverse_hessian(self) -> None:
        optimizer = make_optimizer()
        custom = np.diag([0.5, 0.25])
        optimizer.set_initial_inverse_hessian(custom)
        optimizer.initialize(np.array([0.0, 0.0]))

        np.testing.assert_array_equal(optimizer.get_inverse_hessian(), custom)

    def test_custom_initial_inverse_hessian_shape(self) -> None:
        optimizer = make_optimizer()
        with pytest.raises(ValueError):
            optimizer.set_initial_inverse_hessian(np.eye(3))


# =============================================================================
# Two-phase stepping
# =============================================================================


class TestStepping:
    """Tests for the direction / line search state machine."""

    def test_first_step_computes_direction(self) -> None:
        optimizer = make_optimizer()
        optimizer.initialize(np.array([0.0, 0.0]))

        assert optimizer.step() is False

        assert optimizer.get_mode() is Mode.LINE_SEARCHING
        assert optimizer.get_iterations() == 1
        np.testing.assert_allclose(optimizer.get_gradient(), [-6.0, 2.0])
        # B is the identity so the direction is steepest descent
        np.testing.assert_allclose(optimizer.get_search_direction(), [6.0, -2.0])

    def test_parameters_fixed_during_line_search(self) -> None:
        optimizer = make_optimizer()
        optimizer.initialize(np.array([0.0, 0.0]))
        optimizer.step()
        optimizer.step()

        # first trial step overshoots, so the line search is still sectioning
        assert optimizer.get_mode() is Mode.LINE_SEARCHING
        np.testing.assert_array_equal(optimizer.get_parameters(), [0.0, 0.0])

    def test_step_after_termination(self) -> None:
        optimizer = make_optimizer()
        optimizer.initialize(np.array([0.0, 0.0]))
        run(optimizer)
        iterations = optimizer.get_iterations()
        parameters = optimizer.get_parameters().copy()

        assert optimizer.step() is True
        assert optimizer.get_iterations() == iterations
        np.testing.assert_array_equal(optimizer.get_parameters(), parameters)

    def test_get_parameters_idempotent(self) -> None:
        optimizer = make_optimizer()
        optimizer.initialize(np.array([0.0, 0.0]))
        for _ in range(3):
            optimizer.step()

        first = optimizer.get_parameters()
        second = optimizer.get_parameters()

        assert first is second
        np.testing.assert_array_equal(first, second)


# =============================================================================
# Convergence
# =============================================================================


class TestConvergence:
    """Tests for convergence on known problems."""

    def test_quadratic_converges_in_few_iterations(self) -> None:
        """Exact line search on a quadratic takes at most N + 1 iterations."""
        optimizer = make_optimizer()
        optimizer.initialize(np.array([0.0, 0.0]))

        run(optimizer)

        assert optimizer.is_converged()
        assert optimizer.get_failure_message() is None
        assert optimizer.get_iterations() <= 3
        np.testing.assert_allclose(optimizer.get_parameters(), [3.0, -1.0], atol=1e-8)
        assert optimizer.get_function_value() == pytest.approx(0.0, abs=1e-12)

    def test_quadratic_with_minimum_bound(self) -> None:
        """A known minimum value bounds each step but still converges."""
        optimizer = make_optimizer(func_min_value=0.0, absolute_error_tol=1e-10)
        optimizer.initialize(np.array([0.0, 0.0]))

        run(optimizer)

        assert optimizer.is_converged()
        assert optimizer.get_iterations() < 50
        np.testing.assert_allclose(optimizer.get_parameters(), [3.0, -1.0], atol=1e-4)

    @pytest.mark.parametrize(
        "start",
        [
            np.array([10.0, 10.0]),
            np.array([-4.0, 7.5]),
            np.array([3.0, 100.0]),
        ],
    )
    def test_convex_quadratic_from_any_start(self, start: np.ndarray) -> None:
        A = np.array([[4.0, 1.0], [1.0, 3.0]])
        x_star = np.array([0.5, -2.0])

        optimizer = make_optimizer(
            value_fn=lambda x: 0.5 * (x - x_star) @ A @ (x - x_star),
            gradient_fn=lambda x: A @ (x - x_star),
            func_min_value=0.0,
            absolute_error_tol=1e-10,
        )
        optimizer.initialize(start)
        run(optimizer)

        assert optimizer.is_converged()
        assert optimizer.get_iterations() < 200
        np.testing.assert_allclose(optimizer.get_parameters(), x_star, atol=1e-4)

    def test_rosenbrock(self) -> None:
        optimizer = make_optimizer(
            value_fn=rosenbrock,
            gradient_fn=rosenbrock_gradient,
            absolute_error_tol=1e-10,
        )
        optimizer.initialize(np.array([-1.2, 1.0]))

        run(optimizer)

        assert optimizer.is_converged()
        np.testing.assert_allclose(optimizer.get_parameters(), [1.0, 1.0], atol=1e-4)

    def test_rosenbrock_with_scaled_initial_inverse_hessian(self) -> None:
        optimizer = make_optimizer(
            value_fn=rosenbrock,
            gradient_fn=rosenbrock_gradient,
            scale_initial_inverse_hessian=True,
            absolute_error_tol=1e-10,
        )
        optimizer.initialize(np.array([-1.2, 1.0]))

        run(optimizer)

        assert optimizer.is_converged()
        np.testing.assert_allclose(optimizer.get_parameters(), [1.0, 1.0], atol=1e-4)

    @pytest.mark.parametrize("offset", [5.0, 1000.0])
    def test_rosenbrock_with_nonzero_minimum(self, offset: float) -> None:
        """Default settings still converge once no step can lower f in floating point."""
        function = DifferentiableFunction(
            lambda x: rosenbrock(x) + offset, n=2, gradient_fn=rosenbrock_gradient
        )
        optimizer = QuasiNewtonBFGS(function, LineSearchFletcher86())
        optimizer.initialize(np.array([-1.2, 1.0]))

        run(optimizer)

        assert optimizer.is_converged(), optimizer.get_failure_message()
        assert optimizer.get_failure_message() is None
        np.testing.assert_allclose(optimizer.get_parameters(), [1.0, 1.0], atol=1e-4)
        assert optimizer.get_function_value() == pytest.approx(offset)

    def test_value_non_increasing(self) -> None:
        optimizer = make_optimizer(value_fn=rosenbrock, gradient_fn=rosenbrock_gradient)
        optimizer.initialize(np.array([-1.2, 1.0]))

        values = [optimizer.get_function_value()]
        while not optimizer.step():
            values.append(optimizer.get_function_value())

        for i in range(1, len(values)):
            assert values[i] <= values[i - 1] + 1e-12

    def test_start_at_minimum(self) -> None:
        """A zero gradient is a stationary point, so the search stops at once."""
        optimizer = make_optimizer()
        optimizer.initialize(np.array([3.0, -1.0]))

        assert optimizer.step() is True
        assert optimizer.is_converged()
        assert optimizer.get_iterations() == 0

    def test_theoretical_minimum_reached(self) -> None:
        optimizer = make_optimizer(func_min_value=0.0)
        optimizer.initialize(np.array([3.0, -1.0]))

        assert optimizer.step() is True
        assert optimizer.is_converged()
        assert optimizer.function.n_gradient_evals == 0

    def test_numerical_gradient(self) -> None:
        function = DifferentiableFunction(rosenbrock, n=2)
        optimizer = QuasiNewtonBFGS(
            function,
            LineSearchFletcher86(),
            relative_error_tol=0.0,
            absolute_error_tol=1e-8,
        )
        optimizer.initialize(np.array([-1.2, 1.0]))

        run(optimizer)

        assert optimizer.is_converged()
        np.testing.assert_allclose(optimizer.get_parameters(), [1.0, 1.0], atol=1e-3)

    def test_higher_dimension(self) -> None:
        n = 6
        scales = np.arange(1.0, n + 1.0)
        target = np.linspace(-1.0, 1.0, n)

        optimizer = make_optimizer(
            value_fn=lambda x: float(np.sum(scales * (x - target) ** 2)),
            gradient_fn=lambda x: 2.0 * scales * (x - target),
            n=n,
            func_min_value=0.0,
            absolute_error_tol=1e-10,
        )
        optimizer.initialize(np.zeros(n))
        run(optimizer)

        assert optimizer.is_converged()
        np.testing.assert_allclose(optimizer.get_parameters(), target, atol=1e-4)


# =============================================================================
# Failure and stability handling
# =============================================================================


class TestFailureHandling:
    """Tests for line search failure and inverse Hessian repair."""

    def test_line_search_failure_propagates_message(self) -> None:
        search = FailingLineSearch("bracket not found")
        optimizer = make_optimizer(line_search=search)
        optimizer.initialize(np.array([0.0, 0.0]))

        run(optimizer)

        assert not optimizer.is_converged()
        assert optimizer.get_failure_message() == "bracket not found"
        assert search.n_init == 1

    def test_line_search_failure_keeps_parameters(self) -> None:
        optimizer = make_optimizer(line_search=FailingLineSearch())
        optimizer.initialize(np.array([1.0, 2.0]))

        run(optimizer)

        np.testing.assert_array_equal(optimizer.get_parameters(), [1.0, 2.0])

    def test_reset_on_indefinite_inverse_hessian(self) -> None:
        optimizer = make_optimizer()
        optimizer.set_initial_inverse_hessian(np.array([[-2.0, 0.0], [0.0, 0.5]]))
        optimizer.initialize(np.array([0.0, 0.0]))

        optimizer.step()

        # reset to the largest diagonal magnitude times the identity
        np.testing.assert_array_equal(optimizer.get_inverse_hessian(), 2.0 * np.eye(2))
        direction = optimizer.get_search_direction()
        assert np.dot(optimizer.get_gradient(), direction) < 0
        assert optimizer.get_mode() is Mode.LINE_SEARCHING

    def test_reset_is_silent(self) -> None:
        optimizer = make_optimizer()
        optimizer.set_initial_inverse_hessian(-np.eye(2))
        optimizer.initialize(np.array([0.0, 0.0]))

        run(optimizer)

        assert optimizer.is_converged()
        assert optimizer.get_failure_message() is None
        np.testing.assert_allclose(optimizer.get_parameters(), [3.0, -1.0], atol=1e-6)

    def test_reset_with_zero_diagonal_uses_identity(self) -> None:
        optimizer = make_optimizer()
        optimizer.set_initial_inverse_hessian(np.array([[0.0, 1.0], [1.0, 0.0]]))
        optimizer.initialize(np.array([0.0, 2.0]))

        optimizer.step()

        np.testing.assert_array_equal(optimizer.get_inverse_hessian(), np.eye(2))
        assert np.dot(optimizer.get_gradient(), optimizer.get_search_direction()) < 0

    def test_non_finite_gradient_fails(self) -> None:
        optimizer = make_optimizer(
            value_fn=lambda x: float(np.sum(x ** 2)),
            gradient_fn=lambda x: np.array([np.nan, 1.0]),
        )
        optimizer.initialize(np.array([1.0, 1.0]))

        assert optimizer.step() is True
        assert not optimizer.is_converged()
        assert optimizer.get_failure_message() is not None

    @pytest.mark.parametrize("func_min_value", [float("-inf"), 0.0])
    def test_non_finite_value_fails(self, func_min_value: float) -> None:
        optimizer = make_optimizer(
            value_fn=lambda x: float("nan"),
            gradient_fn=lambda x: np.ones(2),
            func_min_value=func_min_value,
        )
        optimizer.initialize(np.array([1.0, 1.0]))

        assert optimizer.step() is True
        assert not optimizer.is_converged()
        assert "not finite" in optimizer.get_failure_message()
        assert optimizer.step() is True

    def test_infinite_gradient_fails(self) -> None:
        optimizer = make_optimizer(
            value_fn=lambda x: float(np.sum(x ** 2)),
            gradient_fn=lambda x: np.array([np.inf, 0.0]),
        )
        optimizer.initialize(np.array([1.0, 1.0]))

        assert optimizer.step() is True
        assert not optimizer.is_converged()
        assert "Gradient is not finite" in optimizer.get_failure_message()

    def test_scaled_initial_inverse_hessian(self) -> None:
        """With y = c s the scaled identity is already exact: B = I / c."""
        optimizer = make_optimizer(
            value_fn=lambda x: 5.0 * shifted_bowl(x),
            gradient_fn=lambda x: 5.0 * shifted_bowl_gradient(x),
            scale_initial_inverse_hessian=True,
        )
        optimizer.initialize(np.array([0.0, 0.0]))

        while not optimizer.step() and optimizer.get_iterations() < 2:
            pass

        np.testing.assert_allclose(
            optimizer.get_inverse_hessian(), 0.1 * np.eye(2), atol=1e-8
        )
