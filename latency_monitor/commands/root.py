import asyncio
import sys

import click
import uvloop

from latency_monitor.env import Env, TimeParser, load_env
from latency_monitor.monitor import LatencyMonitor


def validate_duration(ctx: click.Context, param: click.Parameter, value: str | None):
    if value is None:
        return value

    try:
        TimeParser(value)

    except ValueError as err:
        raise click.BadParameter(str(err)) from err

    return value


@click.command(
    help="Continuously ping each host and print its latency and running average.",
)
@click.argument("hosts", nargs=-1, type=str)
@click.option(
    "--interval",
    default=None,
    type=str,
    callback=validate_duration,
    help="Delay between a reply (or timeout) and the host's next probe, e.g. 500ms.",
)
@click.option(
    "--timeout",
    default=None,
    type=str,
    callback=validate_duration,
    help="How long to wait for each echo reply, e.g. 250ms.",
)
@click.option(
    "--jitter",
    default=None,
    type=str,
    callback=validate_duration,
    help="Upper bound of the random delay before each host's first probe.",
)
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(
        ["trace", "debug", "info", "warn", "error", "critical", "fatal"],
        case_sensitive=False,
    ),
)
@click.option(
    "--log-path",
    default=None,
    type=str,
    help="JSON file diagnostics are also appended to.",
)
@click.option(
    "--unprivileged",
    is_flag=True,
    show_default=True,
    default=False,
    help="Use unprivileged (datagram) ICMP sockets.",
)
@click.option("--env-file", default=None, type=str)
def latency_monitor(
    hosts: tuple[str, ...],
    interval: str | None,
    timeout: str | None,
    jitter: str | None,
    log_level: str | None,
    log_path: str | None,
    unprivileged: bool,
    env_file: str | None,
):
    try:
        env = load_env(
            Env,
            env_file=env_file,
            override={
                "LATENCY_MONITOR_HOSTS": ",".join(hosts) if hosts else None,
                "LATENCY_MONITOR_PROBE_INTERVAL": interval,
                "LATENCY_MONITOR_PROBE_TIMEOUT": timeout,
                "LATENCY_MONITOR_INITIAL_JITTER": jitter,
                "LATENCY_MONITOR_LOG_LEVEL": log_level.lower() if log_level else None,
                "LATENCY_MONITOR_LOG_PATH": log_path,
                "LATENCY_MONITOR_PRIVILEGED": False if unprivileged else None,
            },
        )

        monitor = LatencyMonitor(env)

    except ValueError as err:
        # Bad values from the environment or an env file.
        raise click.UsageError(str(err)) from err

    try:
        exit_code = uvloop.run(monitor.run())

    except (
        KeyboardInterrupt,
        asyncio.CancelledError,
    ):
        print("Exiting...")
        exit_code = 0

    sys.exit(exit_code)


def run():
    latency_monitor()
