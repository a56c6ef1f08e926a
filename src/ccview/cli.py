"""CLI entrypoint — ccview serve, ccview stats, ccview sessions."""

from __future__ import annotations

import logging

import click

from ccview.config import load_config
from ccview.sessions import get_all_projects
from ccview.stats.report import get_overall_statistics, get_project_statistics


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool):
    """ccview — browse Claude Code sessions and usage statistics."""
    config = load_config()
    logging.basicConfig(
        level=logging.DEBUG if verbose else config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    ctx.obj = config


@cli.command()
@click.option("--port", default=None, type=int, help="Port to serve on (default: 9090).")
@click.pass_obj
def serve(config, port: int | None):
    """Start the JSON API server."""
    serve_port = port or config.port

    if not config.projects_dir.is_dir():
        click.echo(f"No Claude Code projects found in {config.projects_dir}")
        return

    from ccview.web.app import create_app

    click.echo(f"Serving {config.projects_dir} at http://localhost:{serve_port}")
    click.echo("Press Ctrl+C to stop.")
    app = create_app(config)
    app.run(host="localhost", port=serve_port)


@cli.command()
@click.option("--days", default=None, help="Window: 7, 30, all, or any number of days.")
@click.option("--project", default=None, help="Project id (directory name) to report on.")
@click.pass_obj
def stats(config, days: str | None, project: str | None):
    """Print usage statistics to terminal."""
    days = days or config.default_days
    try:
        if project:
            report = get_project_statistics(config.projects_dir, project, days)
        else:
            report = get_overall_statistics(config.projects_dir, days)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--days") from e

    if report is None:
        click.echo(f"Project '{project}' not found.", err=True)
        raise SystemExit(1)

    overview = report["overview"]
    if overview["sessionCount"] == 0:
        click.echo("No sessions found in this window.")
        return

    usage = overview["tokenUsage"]
    cache = report["cache"]
    productivity = report["productivity"]
    click.echo(
        f"{overview['sessionCount']} sessions, {overview['messageCount']} messages "
        f"since {overview['dateRange']['start'][:10]}. "
        f"Est. cost: ${report['cost']['totalCost']:.2f}."
    )
    click.echo(
        f"Tokens: {usage['totalTokens']:,} total "
        f"({usage['inputTokens']:,} in, {usage['outputTokens']:,} out, "
        f"{usage['cacheReadTokens']:,} cache read, "
        f"{usage['cacheCreationTokens']:,} cache write)."
    )
    click.echo(
        f"Cache hit rate: {cache['cacheHitRate']:.1f}% "
        f"(saved ~${cache['estimatedSavings']:.2f}). "
        f"Agent usage: {productivity['agentUsageRate']:.1f}% of sessions."
    )

    click.echo("\nBy project:")
    for p in report["byProject"]:
        if p["sessionCount"]:
            click.echo(
                f"  {p['name']}: {p['sessionCount']} sessions, "
                f"{p['tokenUsage']['totalTokens']:,} tokens"
            )

    click.echo("\nBy model:")
    for m in report["byModel"]:
        click.echo(
            f"  {m['model']}: {m['messageCount']} messages, "
            f"${m['cost']['totalCost']:.2f}"
        )

    if productivity["toolUsage"]:
        click.echo("\nTop tools:")
        for t in productivity["toolUsage"][:10]:
            click.echo(
                f"  {t['toolName']}: {t['totalUses']} calls, "
                f"{t['successRate']:.0f}% ok"
            )


@cli.command()
@click.pass_obj
def sessions(config):
    """List projects and their sessions, most recent first."""
    groups = get_all_projects(config.projects_dir)
    if not groups:
        click.echo(f"No sessions found in {config.projects_dir}")
        return

    for group in groups:
        click.echo(
            f"{group.name} ({len(group.sessions)} sessions, "
            f"last active {group.last_activity.astimezone():%Y-%m-%d %H:%M})"
        )
        for session in group.sessions:
            click.echo(f"  {session.id}  {session.title}")
            for agent in session.agent_sessions or []:
                click.echo(f"    ↳ {agent.id}  {agent.title}")
