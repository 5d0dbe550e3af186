import argparse
import logging

from .core import (
    OptionType, PUT,
    DEFAULT_N_PATHS, DEFAULT_N_STEPS, DEFAULT_TOL,
)
from .monte_carlo import BestAverageMC
from .solver import solve_implied_vol

# Reference quote:      T       S0     K    r    kind  premium
EXAMPLE_QUOTE = dict(T=0.0493, S0=75.576, K=75, r=0.08, kind=PUT, premium=1.298)


def _kind(s: str):
    try:
        return OptionType.parse(s)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def add_market(parser: argparse.ArgumentParser):
    parser.add_argument("--S0", type=float, required=True)
    parser.add_argument("--K", type=float, required=True)
    parser.add_argument("--T", type=float, required=True, help="years")
    parser.add_argument("--r", type=float, required=True, help="cont. risk-free")
    parser.add_argument("--kind", type=_kind, default=PUT, help="call|put")


def add_simulation(parser: argparse.ArgumentParser):
    parser.add_argument("--n-paths", dest="n_paths", type=int, default=DEFAULT_N_PATHS)
    parser.add_argument("--n-steps", dest="n_steps", type=int, default=DEFAULT_N_STEPS)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--workers", dest="n_workers", type=int, default=1)


def _print_iv(args, T, S0, K, r, kind, premium):
    res = solve_implied_vol(
        T, S0, K, r, kind, premium,
        tol=args.tol,
        seed=args.seed,
        n_paths=args.n_paths,
        n_steps=args.n_steps,
        n_workers=args.n_workers,
        check_bracket=getattr(args, "check_bracket", False),
    )
    print(f"{res.vol * 100}%")


def cmd_price(args):
    model = BestAverageMC(args.T, args.S0, args.K, args.r, args.sigma,
                          n_paths=args.n_paths, n_steps=args.n_steps,
                          seed=args.seed, n_workers=args.n_workers)
    if args.kind is None:
        print(f"call {model.call:.10f}  put {model.put:.10f}")
    else:
        print(f"{model.get_price(args.kind):.10f}")


def cmd_iv(args):
    _print_iv(args, args.T, args.S0, args.K, args.r, args.kind, args.premium)


def cmd_example(args):
    q = EXAMPLE_QUOTE
    _print_iv(args, q["T"], q["S0"], q["K"], q["r"], q["kind"], q["premium"])


def main(argv=None):
    p = argparse.ArgumentParser(prog="impliedvol",
                                description="Monte Carlo implied volatility")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    # Pricer
    p_px = sub.add_parser("price", help="simulated premium at a given sigma")
    add_market(p_px)
    p_px.set_defaults(kind=None)
    p_px.add_argument("--sigma", type=float, required=True)
    add_simulation(p_px)
    p_px.set_defaults(func=cmd_price)

    # Implied vol
    p_iv = sub.add_parser("iv", help="implied volatility from a premium")
    add_market(p_iv)
    p_iv.add_argument("--premium", type=float, required=True)
    p_iv.add_argument("--tol", type=float, default=DEFAULT_TOL)
    p_iv.add_argument("--check-bracket", dest="check_bracket", action="store_true",
                      help="fail if the premium is out of the achievable range")
    add_simulation(p_iv)
    p_iv.set_defaults(func=cmd_iv)

    # Reference quote
    p_ex = sub.add_parser("example", help="implied vol of the reference put quote")
    p_ex.add_argument("--tol", type=float, default=DEFAULT_TOL)
    add_simulation(p_ex)
    p_ex.set_defaults(func=cmd_example)

    args = p.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except ValueError as e:
        p.error(str(e))


if __name__ == "__main__":
    main()
