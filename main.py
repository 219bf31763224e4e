"""Entry point for the island escape engine.

Usage:
    python main.py --status                     # Show inventory and raft progress
    python main.py --review good --review easy  # Gather once per flashcard answer
    python main.py --craft rope                 # Craft a recipe
    python main.py --pet crab                   # Choose the active pet
    python main.py --review hard --fast         # Skip the walking/searching pauses
"""

from __future__ import annotations

import asyncio
import logging
import random
import sys

import click

from game.config import PROJECT_ROOT, load_config, resolve_path
from game.core import ActionTiming, IslandGame
from game.store import GameDB, GameError
from loot.catalog import CatalogError, load_catalog
from loot.models import QUALITIES
from progression import levels_until_next_pet, next_pet


def _setup_logging(verbose: bool = False, log_file: str | None = None) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    fmt = "%(asctime)s — %(name)s — %(levelname)s — %(message)s"

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=level, format=fmt, handlers=handlers)

    # Quiet down noisy libraries
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def _print_status(game: IslandGame) -> None:
    progress = game.player.progress
    click.echo(f"\n  Level {progress.level} ({progress.current_xp} XP, {game.player.xp_to_next_level()} to next)")
    click.echo(f"  Locations: {', '.join(game.get_unlocked_locations())}")
    if game.state.unlocked_pets:
        active = game.state.active_pet or "none"
        click.echo(f"  Pets: {', '.join(game.state.unlocked_pets)} (active: {active})")
    upcoming = next_pet(progress.level, game.catalog.pets)
    if upcoming is not None:
        wait = levels_until_next_pet(progress.level, game.catalog.pets)
        click.echo(f"  Next pet: {upcoming.name} in {wait} level(s)")

    click.echo("  Inventory:")
    items = game.ledger.items()
    if not items:
        click.echo("    (empty)")
    for item in items:
        res = game.catalog.resource(item.resource_id)
        name = res.name if res else item.resource_id
        click.echo(f"    {name:<20} {item.quantity:>3}")

    click.echo(f"  Raft: {game.raft_progress_percentage():.0f}%")
    for recipe in game.crafting.raft_recipes():
        mark = "x" if game.crafting.is_crafted(recipe.id) else ("+" if game.can_craft(recipe) else " ")
        click.echo(f"    [{mark}] {recipe.name} (level {recipe.required_level})")
    if game.has_completed_game():
        click.echo("\n  The raft is ready. You escaped the island!")
    click.echo("")


async def _run(cfg: dict, reviews: tuple[str, ...], craft: str | None, pet: str | None,
               status: bool, fast: bool, seed: int | None) -> int:
    catalog_path = cfg.get("catalog", {}).get("path", "config/catalog.yaml")
    catalog = load_catalog(PROJECT_ROOT / catalog_path)
    db_path = resolve_path(cfg, cfg.get("storage", {}).get("game_db", "data/island.db"))

    timing = ActionTiming(0, 0, 0) if fast else ActionTiming.from_config(cfg)
    rng = random.Random(seed)
    exit_code = 0

    async with GameDB(db_path) as db:
        game = await IslandGame.open(db, catalog, cfg, rng=rng, timing=timing)

        if pet is not None:
            ok = await game.set_active_pet(None if pet == "none" else pet)
            click.echo(f"  Active pet: {pet}" if ok else f"  Pet '{pet}' is not unlocked yet.")
            exit_code = exit_code or (0 if ok else 2)

        if reviews:
            game.start_session()
            for quality in reviews:
                record = await game.review(quality)
                loot = record.loot
                if loot.found:
                    res = catalog.resource(loot.resource_id)
                    name = res.name if res else loot.resource_id
                    line = f"  [{quality}] {record.location}: {loot.quantity} x {name} ({loot.rarity})"
                else:
                    line = f"  [{quality}] {record.location}: nothing this time"
                if record.bonuses:
                    line += f"  <{'; '.join(record.bonuses)}>"
                click.echo(line)
            session = await game.end_session()
            if session:
                click.echo(f"  Session: {session.cards_reviewed} cards, +{session.xp_earned} XP")

        if craft is not None:
            ok = await game.craft_item(craft)
            click.echo(f"  Crafted {craft}." if ok else f"  Cannot craft {craft} yet.")
            exit_code = exit_code or (0 if ok else 2)

        await game.wait_idle()
        if status or not (reviews or craft or pet):
            _print_status(game)

    return exit_code


@click.command()
@click.option("--review", "reviews", multiple=True, type=click.Choice(QUALITIES),
              help="Flashcard answer quality; repeat for several answers")
@click.option("--craft", default=None, help="Recipe id to craft")
@click.option("--pet", default=None, help="Pet id to make active ('none' to clear)")
@click.option("--status", is_flag=True, help="Show inventory and progress")
@click.option("--fast", is_flag=True, help="Skip the walking/searching pauses")
@click.option("--seed", type=int, default=None, help="Seed for reproducible rolls")
@click.option("--verbose", is_flag=True, help="Enable debug logging")
@click.option("--config-dir", type=click.Path(), default=None, help="Config directory")
def main(reviews: tuple[str, ...], craft: str | None, pet: str | None, status: bool,
         fast: bool, seed: int | None, verbose: bool, config_dir: str | None) -> None:
    """Island Escape: turn flashcard answers into loot, tools and a raft."""

    try:
        cfg = load_config(config_dir)
    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    log_file = cfg.get("storage", {}).get("log_file")
    _setup_logging(verbose=verbose, log_file=log_file)

    if seed is None:
        seed = cfg["_env"]["rng_seed"]

    try:
        code = asyncio.run(_run(cfg, reviews, craft, pet, status, fast, seed))
    except (CatalogError, GameError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
