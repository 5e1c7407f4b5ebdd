"""Main application entry point."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .api import create_app
from .config import load_engine_config
from .data import read_lead_events
from .errors import LeadScoringError
from .inference import ModelHandle, get_strategy
from .training import CancellationToken, evaluate_model, load_model, save_model, train_engine


def train(args: argparse.Namespace) -> None:
    """Train every configured algorithm and save the artifacts."""
    config = load_engine_config(args.engine)
    events = read_lead_events(config.events_path, max_lines=args.max_lines)

    cancel_token = CancellationToken(timeout=args.timeout) if args.timeout else None
    artifacts = train_engine(
        events,
        config,
        num_partitions=args.partitions,
        num_threads=args.threads,
        cancel_token=cancel_token,
    )
    save_model(artifacts, args.output)

    print("\n" + "=" * 70)
    print("Training completed!")
    print(f"  - Events: {config.events_path}")
    for position, artifact in enumerate(artifacts):
        print(f"  - Algorithm #{position}: {artifact.ensemble.num_trees} trees, seed {artifact.ensemble.seed}")
    print(f"  - Model: {args.output}")
    print("=" * 70)


def evaluate(args: argparse.Namespace) -> None:
    """Hold-out evaluation of the first configured algorithm."""
    config = load_engine_config(args.engine)
    events = read_lead_events(config.events_path, max_lines=args.max_lines)

    metrics = evaluate_model(
        events,
        config.algorithms[0],
        test_size=args.test_size,
        random_state=args.random_state,
    )

    print("\n" + "=" * 70)
    print("Evaluation completed!")
    for key, value in metrics.items():
        print(f"  - {key}: {value}")
    print("=" * 70)


def serve(args: argparse.Namespace) -> None:
    """Serve the saved model over HTTP."""
    config = load_engine_config(args.engine)
    handle = ModelHandle(load_model(args.model))
    app = create_app(handle, get_strategy(config.combiner), model_path=args.model)
    app.run(host=args.host, port=args.port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="leadscoring", description="Lead conversion scoring")
    parser.add_argument("--engine", type=Path, default=Path("engine.json"), help="engine config file")
    parser.add_argument("--verbose", action="store_true", help="debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    train_parser = subparsers.add_parser("train", help="train and save a model")
    train_parser.add_argument("--output", type=Path, default=Path("models/model.pkl"))
    train_parser.add_argument("--max-lines", type=int, default=None)
    train_parser.add_argument("--partitions", type=int, default=1, help="session reconstruction partitions")
    train_parser.add_argument("--threads", type=int, default=1)
    train_parser.add_argument("--timeout", type=float, default=None, help="seconds before training is cancelled")
    train_parser.set_defaults(func=train)

    evaluate_parser = subparsers.add_parser("evaluate", help="hold-out evaluation")
    evaluate_parser.add_argument("--max-lines", type=int, default=None)
    evaluate_parser.add_argument("--test-size", type=float, default=0.2)
    evaluate_parser.add_argument("--random-state", type=int, default=42)
    evaluate_parser.set_defaults(func=evaluate)

    serve_parser = subparsers.add_parser("serve", help="serve a saved model")
    serve_parser.add_argument("--model", type=Path, default=Path("models/model.pkl"))
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.set_defaults(func=serve)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main function."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        args.func(args)
    except LeadScoringError as e:
        logging.getLogger(__name__).error(f"{type(e).__name__}: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
