from __future__ import annotations

import argparse

from atr_montecarlo import SimulationParams, run_simulation


def progress(completed: int, total: int):
    step = max(1, total // 10)
    if completed % step == 0 or completed == total:
        print(f"Progress: {completed}/{total} ({100 * completed / total:.0f}%)")


def create_path_chart(result, current_price: float, days: int, sample_size: int = 50):
    """Plot a sample of paths against the two bounds and the starting point."""
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(figsize=(12, 6))
    for path in result.paths[:sample_size]:
        hit = any(p >= result.upper_bound or p <= result.lower_bound for p in path[1:])
        ax.plot(range(len(path)),
                path,
                color='lightgreen' if hit else 'lightpink',
                linewidth=1,
                alpha=0.7)

    ax.axhline(result.upper_bound, color='black', linestyle=':', linewidth=2, label='Bounds')
    ax.axhline(result.lower_bound, color='black', linestyle=':', linewidth=2)
    ax.scatter([0], [current_price], color='green', s=40, zorder=3, label='Start')

    ax.set_xlim(0, days)
    ax.set_xlabel('Days')
    ax.set_ylabel('Price')
    ax.set_title(f'Monte Carlo Simulation of Price Paths '
                 f'(either bound: {result.probability_combined:.2f}%)')
    ax.legend()
    ax.grid(True, alpha=0.3)
    plt.tight_layout()
    return fig


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Probability of an ATR-driven price touching either side of a range.")
    parser.add_argument("--price", type=float, default=100.0, help="current price")
    parser.add_argument("--atr", type=float, default=5.0, help="average true range (daily)")
    parser.add_argument("--range", dest="range_price", type=float, default=15.0,
                        help="distance from current price to each bound")
    parser.add_argument("--days", type=int, default=15, help="time horizon in days")
    parser.add_argument("--iterations", type=int, default=100_000, help="number of paths")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--backend", default="auto",
                        choices=("auto", "sequential", "thread", "process"))
    parser.add_argument("--workers", type=int, default=None)
    parser.add_argument("--plot", action="store_true", help="show a chart of 50 sample paths")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    params = SimulationParams(current_price=args.price,
                              atr=args.atr,
                              range_price=args.range_price,
                              days=args.days,
                              iterations=args.iterations)

    print(f"Running {params.iterations} paths over {params.days} days "
          f"(bounds {params.bounds.lower:.2f} / {params.bounds.upper:.2f})…")
    result = run_simulation(params,
                            seed=args.seed,
                            backend=args.backend,
                            n_workers=args.workers,
                            progress_callback=progress)

    print(result.result_to_string())

    if args.plot:
        import matplotlib.pyplot as plt

        create_path_chart(result, params.current_price, params.days)
        plt.show()


if __name__ == "__main__":
    main()
