"""LLMB CLI - benchmark locally hosted LLMs from the command line."""

import argparse
import asyncio
import json
import logging
import subprocess
import sys
from pathlib import Path

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from core.config import DEFAULT_CONFIG_NAME, dump_default_config  # noqa: E402
from core.errors import LLMBError  # noqa: E402


def configure_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _service(args):
    from benchmark.service import BenchmarkService
    from core.config import load_settings

    return BenchmarkService(load_settings(args.config))


def _split(values):
    """Accept both repeated flags and comma-separated lists."""
    if not values:
        return None
    items = []
    for value in values:
        items.extend(v.strip() for v in value.split(",") if v.strip())
    return items


def _print_json(data):
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


# ── Commands ──────────────────────────────────────────────────────────

def cmd_init(args):
    """Write a default llmb.yaml in the current directory."""
    config_path = Path.cwd() / DEFAULT_CONFIG_NAME
    if config_path.exists() and not args.force:
        print(f"  [ok] {DEFAULT_CONFIG_NAME} already exists")
    else:
        config_path.write_text(dump_default_config(), encoding="utf-8")
        print(f"  [ok] {DEFAULT_CONFIG_NAME} created")

    print("\nProject initialized. Next steps:")
    print("  1. Point the endpoints in llmb.yaml at your Ollama instances")
    print("  2. Run: llmb run -m llama3.2")


def cmd_questions(args):
    """List the question catalogue."""
    service = _service(args)
    catalogue = service.list_questions()
    if args.json:
        _print_json(catalogue)
        return

    print(f"\n{'ID':<15} {'Category':<12} {'Difficulty':<10} Question")
    print("-" * 88)
    for q in catalogue["available_questions"]:
        if args.category and q["category"] != args.category:
            continue
        text = q["text"] if len(q["text"]) <= 48 else q["text"][:45] + "..."
        print(f"{q['id']:<15} {q['category']:<12} {q['difficulty']:<10} {text}")
    print(f"\n{catalogue['total_questions']} questions in {len(catalogue['categories'])} categories")


def _print_event(event):
    kind = event.get("type")
    if kind == "start":
        print(f"Benchmark {event['benchmark_id']}: {event['total_tests']} tests")
        if event.get("dropped_question_ids"):
            print(f"  Ignored unknown questions: {', '.join(event['dropped_question_ids'])}")
    elif kind == "progress" and event.get("status") == "starting":
        print(f"  {event['model']} / {event['question']} ...", end="", flush=True)
    elif kind == "result":
        result = event["result"]
        if result["success"]:
            print(f" ok {result['response_time']}ms, {result['tokens_per_second']:.1f} tok/s")
        else:
            print(f" FAILED ({result['error']})")
    elif kind == "progress" and event.get("status") == "completed":
        logging.getLogger(__name__).debug(
            f"{event['completed']}/{event['total']} ({event['percentage']}%)"
        )
    elif kind == "error":
        print(f"\nBenchmark failed: {event['error']}")


def _print_run_summary(result):
    summary = result["summary"]
    print(f"\n{'=' * 60}")
    print(f"Benchmark: {result['id']}")
    print(f"Tests: {summary['total_tests']} total, {summary['successful_tests']} succeeded, "
          f"{summary['failed_tests']} failed ({summary['timeout_tests']} timeouts)")
    print(f"Average response time: {summary['average_response_time']:.0f}ms")
    print(f"\n{'Model':<35} {'Success':>8} {'Avg ms':>9} {'Tok/s':>8}")
    print("-" * 63)
    for name, model in result["results"].items():
        print(f"{name:<35} {model['success_rate']:>7.0f}% {model['average_response_time']:>9.0f} "
              f"{model['average_tokens_per_second']:>8.1f}")


async def _run_streaming(service, models, questions, service_urls, save):
    final = None
    events = service.stream_benchmark(models, questions, service_urls, save=save)
    async for event in events:
        _print_event(event)
        if event.get("type") == "complete":
            final = event["result"]
    return final


async def _run_batch(service, models, questions, service_urls, save):
    from benchmark.events import CollectingSink

    sink = CollectingSink()
    result = await service.run_benchmark(models, questions, service_urls, save=save, sink=sink)
    for event in sink.events:
        _print_event(event)
    return result


def cmd_run(args):
    """Run a benchmark over models × questions."""
    service = _service(args)
    models = _split(args.models)
    questions = _split(args.questions)
    service_urls = {}
    for item in args.service_url or []:
        model, sep, url = item.partition("=")
        if not sep or not model or not url:
            print(f"Ignoring malformed --service-url '{item}' (expected MODEL=URL)")
            continue
        service_urls[model] = url

    runner = _run_streaming if args.stream else _run_batch

    async def go():
        try:
            return await runner(service, models, questions, service_urls, not args.no_save)
        finally:
            await service.aclose()

    result = asyncio.run(go())
    if result is None:
        sys.exit(1)

    _print_run_summary(result)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(result, f, indent=2, ensure_ascii=False)
        print(f"\nResults saved to {args.output}")
    elif not args.no_save:
        print(f"\nStored in {service.settings.storage.results_dir}")


def cmd_history(args):
    """List stored benchmark runs."""
    service = _service(args)
    history = service.get_history(limit=args.limit, offset=args.offset)
    runs = history["benchmarks"]
    if not runs:
        print("No benchmark runs found. Run `llmb run` first.")
        return

    print(f"\n{'ID':<36} {'Timestamp':<27} {'Models':>6} {'Tests':>6} {'OK':>5}")
    print("-" * 84)
    for r in runs:
        summary = r.get("summary", {})
        print(f"{r['id']:<36} {r['timestamp'][:26]:<27} {r.get('models_tested', 0):>6} "
              f"{summary.get('total_tests', 0):>6} {summary.get('successful_tests', 0):>5}")
    print(f"\nShowing {len(runs)} of {history['total']}")


def cmd_show(args):
    """Show one stored run."""
    service = _service(args)
    run = service.get_run(args.benchmark_id)
    if args.json:
        _print_json(run)
    else:
        _print_run_summary(run)


def cmd_delete(args):
    """Delete one run or the whole history."""
    service = _service(args)
    if args.all:
        print(f"Deleted {service.delete_all_runs()} benchmark(s)")
        return
    if not args.benchmark_id:
        print("Give a benchmark id or --all")
        sys.exit(2)
    if not service.delete_run(args.benchmark_id):
        print(f"Benchmark '{args.benchmark_id}' not found")
        sys.exit(1)
    print(f"Deleted {args.benchmark_id}")


def cmd_rate(args):
    """Attach a reviewer rating or comment to one answer."""
    service = _service(args)
    updated = service.rate(args.benchmark_id, args.model, args.question, rating=args.rating, comment=args.comment)
    _print_json(updated)


def cmd_ranking(args):
    """Rank models across all stored runs."""
    service = _service(args)
    ranked = service.ranking(args.mode)["models"]
    if not ranked:
        print("No benchmark runs found. Run `llmb run` first.")
        return

    print(f"\nRanking by {args.mode}")
    print(f"{'#':>3} {'Model':<35} {'Score':>7} {'Success':>8} {'Tok/s':>7} {'Rating':>7}")
    print("-" * 72)
    for i, m in enumerate(ranked, 1):
        print(f"{i:>3} {m['name']:<35} {m['overall_score']:>7.1f} {m['success_rate']:>7.0f}% "
              f"{m['avg_tokens_per_second']:>7.1f} {m['avg_user_rating']:>7.1f}")


def cmd_health(args):
    """Probe every configured Ollama endpoint."""
    service = _service(args)

    async def go():
        try:
            return await service.health()
        finally:
            await service.aclose()

    status = asyncio.run(go())
    for name, s in status["services"].items():
        mark = "UP" if s.get("healthy") else "DOWN"
        detail = f"v{s.get('version')}" if s.get("healthy") else s.get("error", "")
        print(f"  [{mark:<4}] {name:<12} {s['base_url']:<28} {detail}")
    if not status["healthy"]:
        sys.exit(1)


def cmd_dashboard(args):
    """Launch the web dashboard."""
    print(f"Starting dashboard on http://{args.host}:{args.port}")
    subprocess.run([
        sys.executable, "-m", "uvicorn",
        "dashboard.app:app",
        "--host", args.host,
        "--port", str(args.port),
        "--reload" if args.reload else "--no-access-log",
    ], cwd=str(PROJECT_ROOT))


# ── Argument parser ───────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="llmb",
        description="LLMB - benchmark locally hosted LLMs",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", "-c", help="Path to llmb.yaml")
    sub = parser.add_subparsers(dest="command", help="Available commands")

    # init
    p_init = sub.add_parser("init", help="Write a default llmb.yaml")
    p_init.add_argument("--force", action="store_true", help="Overwrite an existing llmb.yaml")

    # questions
    p_q = sub.add_parser("questions", help="List benchmark questions")
    p_q.add_argument("--category", help="Only show one category")
    p_q.add_argument("--json", action="store_true", help="Print raw JSON")

    # run
    p_run = sub.add_parser("run", help="Run a benchmark")
    p_run.add_argument("--models", "-m", action="append", required=True, help="Model id(s), repeatable or comma-separated")
    p_run.add_argument("--questions", "-q", action="append", help="Question id(s); defaults to all")
    p_run.add_argument("--service-url", action="append", help="Endpoint override as MODEL=URL")
    p_run.add_argument("--stream", action="store_true", help="Print progress as tests run")
    p_run.add_argument("--no-save", action="store_true", help="Do not store the run")
    p_run.add_argument("--output", "-o", help="Also write the run JSON to this file")

    # history
    p_hist = sub.add_parser("history", help="List stored runs")
    p_hist.add_argument("--limit", type=int, default=20, help="Number of runs to show")
    p_hist.add_argument("--offset", type=int, default=0, help="Runs to skip")

    # show
    p_show = sub.add_parser("show", help="Show one stored run")
    p_show.add_argument("benchmark_id")
    p_show.add_argument("--json", action="store_true", help="Print raw JSON")

    # delete
    p_del = sub.add_parser("delete", help="Delete stored runs")
    p_del.add_argument("benchmark_id", nargs="?")
    p_del.add_argument("--all", action="store_true", help="Delete the whole history")

    # rate
    p_rate = sub.add_parser("rate", help="Rate one answer")
    p_rate.add_argument("benchmark_id")
    p_rate.add_argument("--model", "-m", required=True)
    p_rate.add_argument("--question", "-q", required=True)
    p_rate.add_argument("--rating", "-r", type=int, choices=range(1, 6), help="Rating from 1 to 5")
    p_rate.add_argument("--comment", help="Free-text reviewer comment")

    # ranking
    from benchmark.ranking import RANKING_MODES
    p_rank = sub.add_parser("ranking", help="Rank models across stored runs")
    p_rank.add_argument("--mode", choices=RANKING_MODES, default="overall")

    # health
    sub.add_parser("health", help="Check configured Ollama endpoints")

    # dashboard
    p_dash = sub.add_parser("dashboard", help="Launch web dashboard")
    p_dash.add_argument("--port", type=int, default=8000, help="Port number")
    p_dash.add_argument("--host", default="127.0.0.1", help="Host address")
    p_dash.add_argument("--reload", action="store_true", help="Enable auto-reload")

    return parser


def main():
    parser = build_parser()
    args = parser.parse_args()
    configure_logging(args.verbose)

    commands = {
        "init": cmd_init,
        "questions": cmd_questions,
        "run": cmd_run,
        "history": cmd_history,
        "show": cmd_show,
        "delete": cmd_delete,
        "rate": cmd_rate,
        "ranking": cmd_ranking,
        "health": cmd_health,
        "dashboard": cmd_dashboard,
    }

    if not args.command:
        parser.print_help()
        sys.exit(0)

    handler = commands.get(args.command)
    if not handler:
        parser.print_help()
        return
    try:
        handler(args)
    except LLMBError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(e.exit_code)


if __name__ == "__main__":
    main()
