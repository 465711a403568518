"""
Management command for auditing link counters against daily buckets.
"""

import asyncio

import click

from src.db.session import session_scope
from src.services.stats_audit import audit_link_stats
from src.utils.logger import get_logger

logger = get_logger(__name__)


@click.command()
@click.option(
    "--repair",
    is_flag=True,
    help="Reset drifting link counters to the sums of their daily buckets"
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Print every drifting link"
)
def audit_stats(repair: bool, verbose: bool):
    """
    Compare every link's clicks / total_earnings with its daily buckets.
    """
    logger.info(f"Starting link stats audit (repair={repair})")

    try:
        result = asyncio.run(_audit_stats_async(repair))
    except Exception as e:
        logger.error(f"Error during link stats audit: {e}")
        raise click.ClickException(str(e))

    if verbose:
        for row in result["links"]:
            click.echo(
                f"{row['short_id']}: clicks {row['clicks']} (buckets {row['daily_clicks']}), "
                f"earnings {row['total_earnings']} (buckets {row['daily_earnings']})"
            )

    if not result["drift_count"]:
        click.echo("All link counters match their daily buckets.")
    elif repair:
        click.echo(f"Repaired {result['repaired_count']} of {result['drift_count']} drifting links.")
    else:
        click.echo(f"Found {result['drift_count']} drifting links. Run with --repair to fix them.")


async def _audit_stats_async(repair: bool) -> dict:
    async with session_scope() as session:
        return await audit_link_stats(session, repair=repair)


if __name__ == "__main__":
    audit_stats()
