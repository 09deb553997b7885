"""Main entry point for PRPulse."""

import argparse
import asyncio
import getpass
import logging
import sys
from pathlib import Path

from .config import Config, load_config
from .errors import PRPulseError
from .models import PermissionsState, PRFilter, PullRequest
from .poller import PullRequestPoller
from .services.token_store import FileTokenStore, MemoryTokenStore, TokenStore

DEFAULT_CONFIG_PATH = "config.yaml"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stderr),
        ],
    )

    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def build_token_store(config: Config) -> TokenStore:
    """A token in the config file wins over the token file."""
    if config.github.token is not None:
        return MemoryTokenStore(config.github.token.get_secret_value())
    return FileTokenStore(config.github.token_file)


def format_pull_request(pr: PullRequest) -> str:
    flags = []
    if pr.is_draft:
        flags.append("draft")
    if pr.has_conflicts:
        flags.append("conflicts")
    if pr.is_requested_reviewer and not pr.is_reviewed_by_me:
        flags.append("review requested")

    line = (
        f"{pr.repo_full_name}#{pr.number}  {pr.title}\n"
        f"    CI: {pr.ci_status.label}  Review: {pr.review_state.label}"
    )
    if pr.failed_checks:
        line += f"  Failed: {', '.join(pr.failed_checks)}"
    if flags:
        line += f"  [{', '.join(flags)}]"
    line += f"\n    {pr.html_url}"
    if pr.all_comments:
        latest = pr.all_comments[0]
        line += f"\n    @{latest.author}: {latest.preview}"
    return line


def print_pull_requests(poller: PullRequestPoller, pr_filter: PRFilter) -> None:
    counts = poller.filter_counts()
    print("  ".join(f"{f.label} ({counts[f]})" for f in PRFilter))
    print(f"{poller.health_summary}  (updated {poller.last_updated_label() or 'never'})")
    print()

    pull_requests = poller.filtered(pr_filter)
    if not pull_requests:
        print("Nothing needs your attention" if pr_filter is PRFilter.INBOX else "No PRs match this filter")
        return
    for pr in pull_requests:
        print(format_pull_request(pr))


def print_permissions(state: PermissionsState) -> None:
    for check in state.checks:
        line = f"{check.status.label:<20} {check.name}: {check.description}"
        if check.error_message:
            line += f" ({check.error_message})"
        if check.required_scope and not check.granted:
            line += f" [requires: {check.required_scope}]"
        print(line)
    print()
    if state.has_all_permissions:
        print(f"Token for {state.viewer} has all permissions.")
    elif state.has_minimum_permissions:
        print(f"Token for {state.viewer} works; CI status will be unavailable.")
    else:
        print("Token is missing required permissions.")


async def run_polling(args, logger, poller: PullRequestPoller) -> int:
    """Fetch once or keep polling until interrupted."""
    pr_filter = PRFilter(args.filter)

    if args.once:
        logger.info("Running single fetch...")
        await poller.fetch()
        if poller.error_message:
            logger.error(poller.error_message)
            return 1
        print_pull_requests(poller, pr_filter)
        return 0

    task = poller.start()
    try:
        await task
    finally:
        await poller.stop()
    return 0


async def run_validation(args, logger, poller: PullRequestPoller) -> int:
    """Probe the stored token's permissions and print a checklist."""
    try:
        state = await poller.validate_token()
    except PRPulseError as e:
        logger.error(str(e))
        return 1

    print_permissions(state)
    return 0 if state.has_minimum_permissions else 1


def read_token() -> str:
    if sys.stdin.isatty():
        return getpass.getpass("GitHub token: ")
    return sys.stdin.readline()


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Track GitHub pull requests that need your attention",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  echo $TOKEN | %(prog)s --set-token    # Store a personal access token
  %(prog)s --mode validate              # Check which permissions the token grants
  %(prog)s --once                       # Fetch once and print the inbox
  %(prog)s --once --filter review       # Fetch once and print PRs awaiting your review
  %(prog)s                              # Keep polling (every 5 minutes by default)
        """,
    )

    parser.add_argument(
        "-c",
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Fetch once, print the selected filter and exit",
    )
    parser.add_argument(
        "--filter",
        choices=[f.value for f in PRFilter],
        default=PRFilter.INBOX.value,
        help="Filter to print with --once (default: inbox)",
    )
    parser.add_argument(
        "--mode",
        choices=["polling", "validate"],
        default="polling",
        help="Run mode: polling (default) or validate the token's permissions",
    )
    parser.add_argument(
        "--set-token",
        action="store_true",
        help="Read a token from stdin and store it",
    )
    parser.add_argument(
        "--delete-token",
        action="store_true",
        help="Delete the stored token",
    )

    args = parser.parse_args()

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        if Path(args.config).exists() or args.config != DEFAULT_CONFIG_PATH:
            logger.info("Loading configuration from %s", args.config)
            config = load_config(args.config)
        else:
            logger.info("No %s found, using defaults", DEFAULT_CONFIG_PATH)
            config = Config()
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    token_store = build_token_store(config)

    if args.delete_token:
        return 0 if token_store.delete() else 1

    if args.set_token:
        if not token_store.set(read_token()):
            logger.error("Could not store token")
            return 1
        return 0

    poller = PullRequestPoller(config, token_store)

    try:
        if args.mode == "validate":
            return asyncio.run(run_validation(args, logger, poller))
        return asyncio.run(run_polling(args, logger, poller))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
