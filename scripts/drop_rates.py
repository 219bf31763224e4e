"""Simulate rarity-tier frequencies for each quality signal.

Usage:
    python scripts/drop_rates.py
    python scripts/drop_rates.py --draws 100000 --seed 7 --pet parrot
"""

from __future__ import annotations

import random
import sys
from collections import Counter
from pathlib import Path

import click

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loot.bonuses import boosted_rarity_tables
from loot.catalog import CatalogError, load_catalog
from loot.models import QUALITIES, TIERS
from loot.roller import roll_rarity_tier


@click.command()
@click.option("--draws", default=100_000, show_default=True, help="Rolls per quality")
@click.option("--seed", type=int, default=0, show_default=True, help="RNG seed")
@click.option("--pet", default=None, help="Apply this pet's rarity bonus")
@click.option("--catalog", "catalog_path", type=click.Path(), default=None, help="Catalog YAML")
def drop_rates(draws: int, seed: int, pet: str | None, catalog_path: str | None) -> None:
    """Compare observed tier frequencies with the configured odds."""
    try:
        catalog = load_catalog(catalog_path)
    except CatalogError as e:
        click.echo(f"Catalog invalid: {e}", err=True)
        sys.exit(1)

    tables = catalog.rarity_tables
    if pet is not None:
        if pet not in catalog.pets:
            click.echo(f"Unknown pet: {pet}", err=True)
            sys.exit(1)
        tables = boosted_rarity_tables(tables, catalog.pets[pet]) or tables

    rng = random.Random(seed)
    header = f"{'quality':<8}" + "".join(f"{t:>18}" for t in (*TIERS, "nothing"))
    click.echo(header)
    for quality in QUALITIES:
        counts = Counter(roll_rarity_tier(quality, tables, rng) for _ in range(draws))
        cells = []
        for tier in TIERS:
            expected = tables[quality].get(tier, 0.0)
            observed = counts[tier] / draws * 100
            cells.append(f"{observed:7.2f} ({expected:6.2f})")
        nothing_expected = 100 - sum(tables[quality].values())
        cells.append(f"{counts[None] / draws * 100:7.2f} ({nothing_expected:6.2f})")
        click.echo(f"{quality:<8}" + "".join(f"{c:>18}" for c in cells))


if __name__ == "__main__":
    drop_rates()
