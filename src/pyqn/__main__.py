"""Allow running with: python -m pyqn

Prints version info and available commands.
"""
import pyqn


def main():
    print(f"pyqn {pyqn.__version__} - Quasi-Newton BFGS Minimizer with Wolfe Line Search")
    print()
    print("Usage:")
    print("  python -m pytest tests/   Run tests")
    print()
    print("Quick start:")
    print("  from pyqn.builder import OptimizerBuilder")
    print("  from pyqn.optimizer import Minimizer")
    print("  optimizer = OptimizerBuilder().function(f, n=2).gradient(g).build()")
    print("  result = Minimizer(max_iterations=100).minimize(optimizer, x0)")


main()
