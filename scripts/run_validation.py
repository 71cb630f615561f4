"""Convergence study: constant-element BEM vs harmonic reference solution.

Problem
-------
    Interior Dirichlet problem on a regular N-gon inscribed in the unit
    circle, u = x^3 - 3 x y^2 prescribed at the element midpoints.
    The solved outward flux q is compared with the exact normal
    derivative 3 r^2 cos(3 phi) at the same midpoints; the potential is
    checked at interior probe points with both evaluators.

Gate criterion
--------------
    Relative max-norm flux error at the finest N < 1e-2.

Usage
-----
    python scripts/run_validation.py                        # N = 8 ... 256
    python scripts/run_validation.py --sizes 16 32 64       # custom sizes
    python scripts/run_validation.py --no-plot --verbose
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Dict, List

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

# ---------------------------------------------------------------------------
# Project imports
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from laplace_bem.errors import BEMError
from laplace_bem.reference import exact_normal_derivative, exact_value
from laplace_bem.solver import solve_reference_problem

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("validation")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DEFAULTS = {
    "sizes": [8, 16, 32, 64, 128, 256],
    "output_dir": PROJECT_ROOT / "results" / "validation",
}
GATE_THRESHOLD: float = 1e-2
PROBE_POINTS: np.ndarray = np.array([
    [0.0, 0.0],
    [0.3, 0.2],
    [-0.4, 0.1],
    [0.1, -0.5],
    [0.5, 0.5],
])  # (P, 2), all inside the inscribed 8-gon


# ---------------------------------------------------------------------------
# Study
# ---------------------------------------------------------------------------
def run_case(n_elements: int) -> Dict:
    """Solve the reference problem for one N and collect error measures."""
    t0 = time.perf_counter()
    sol = solve_reference_problem(n_elements)
    solve_time_s = time.perf_counter() - t0

    midpoints = sol.boundary.midpoints  # (N, 2)
    q_exact = exact_normal_derivative(midpoints)  # (N,)
    q_err = float(np.max(np.abs(sol.q - q_exact)))
    q_rel = q_err / float(np.max(np.abs(q_exact)))

    u_probe = exact_value(PROBE_POINTS)  # (P,)
    field_err = float(np.max(np.abs(sol.field(PROBE_POINTS) - u_probe)))
    origin_trap = sol.potential(np.zeros(2))

    logger.info(
        "N=%4d: |q err|=%.3e (rel %.3e), field err=%.3e, u_trap(0)=%+.2e, %.1f ms",
        n_elements, q_err, q_rel, field_err, origin_trap, solve_time_s * 1e3,
    )
    return {
        "n_elements": n_elements,
        "q_err": q_err,
        "q_rel": q_rel,
        "field_err": field_err,
        "origin_trap": origin_trap,
        "time_s": solve_time_s,
    }


def observed_orders(results: List[Dict], key: str) -> List[float]:
    """log2 error ratios between consecutive N (assumes N doubles)."""
    orders = [float("nan")]
    for prev, cur in zip(results[:-1], results[1:]):
        ratio = cur["n_elements"] / prev["n_elements"]
        orders.append(
            float(np.log(prev[key] / cur[key]) / np.log(ratio))
            if cur[key] > 0.0 else float("nan")
        )
    return orders


def write_report(results: List[Dict], output_path: Path) -> None:
    q_orders = observed_orders(results, "q_err")
    f_orders = observed_orders(results, "field_err")
    with open(output_path, "w") as fout:
        fout.write("Constant-element Laplace BEM validation report\n")
        fout.write(f"Generated: {time.strftime('%Y-%m-%d %H:%M:%S')}\n")
        fout.write(f"Gate: relative flux error at finest N < {GATE_THRESHOLD:.0e}\n\n")
        fout.write(f"{'N':>6} {'q err':>12} {'q rel':>12} {'order':>7} "
                   f"{'field err':>12} {'order':>7} {'u_trap(0)':>12}\n")
        fout.write("-" * 74 + "\n")
        for r, qo, fo in zip(results, q_orders, f_orders):
            fout.write(
                f"{r['n_elements']:6d} {r['q_err']:12.3e} {r['q_rel']:12.3e} {qo:7.2f} "
                f"{r['field_err']:12.3e} {fo:7.2f} {r['origin_trap']:12.2e}\n"
            )
        fout.write("-" * 74 + "\n")
    logger.info("Report saved: %s", output_path)


def plot_convergence(results: List[Dict], output_path: Path) -> None:
    """Log-log plot of flux and field errors against N."""
    n = np.array([r["n_elements"] for r in results], dtype=np.float64)
    q_err = np.array([r["q_err"] for r in results])
    field_err = np.array([r["field_err"] for r in results])

    fig, ax = plt.subplots(figsize=(6, 4.5))
    ax.loglog(n, q_err, "o-", label="flux q (max-norm)")
    ax.loglog(n, field_err, "s-", label="interior potential")
    ax.loglog(n, q_err[0] * (n[0] / n) ** 2, "k--", alpha=0.5, label="O(N^-2)")
    ax.set_xlabel("Number of elements N")
    ax.set_ylabel("Error")
    ax.set_title("Constant-element BEM convergence")
    ax.legend()
    ax.grid(True, which="both", alpha=0.3)
    fig.tight_layout()
    fig.savefig(output_path, dpi=150)
    plt.close(fig)
    logger.info("Convergence plot: %s", output_path)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------
def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Laplace BEM convergence study",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--sizes",
        nargs="+",
        type=int,
        default=DEFAULTS["sizes"],
        help="Element counts N to run (default: 8 16 32 64 128 256)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=DEFAULTS["output_dir"],
        help="Directory for the report and figure",
    )
    parser.add_argument(
        "--no-plot",
        action="store_true",
        help="Skip the convergence figure",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable DEBUG logging (assembly timing, condition numbers)",
    )
    return parser.parse_args()


def main() -> None:
    """Main entry point for the convergence study."""
    args = parse_args()
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    sizes = sorted(set(args.sizes))
    if sizes[0] < 3:
        logger.error("Element counts must be >= 3, got %s", sizes)
        sys.exit(1)

    logger.info("Laplace BEM validation: N = %s", sizes)
    results = []
    for n_elements in sizes:
        try:
            results.append(run_case(n_elements))
        except BEMError as exc:
            logger.error("N=%d failed: %s", n_elements, exc)
            sys.exit(1)

    args.output_dir.mkdir(parents=True, exist_ok=True)
    write_report(results, args.output_dir / "validation_report.txt")
    if not args.no_plot:
        plot_convergence(results, args.output_dir / "convergence.png")

    finest = results[-1]
    gate_pass = finest["q_rel"] < GATE_THRESHOLD
    logger.info(
        "Gate (N=%d): rel flux error %.3e -> %s",
        finest["n_elements"], finest["q_rel"], "PASS" if gate_pass else "FAIL",
    )
    sys.exit(0 if gate_pass else 1)


if __name__ == "__main__":
    main()
