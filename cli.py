#!/usr/bin/env python3
"""
IronWars Run Engine - Command Line Interface

CLI for playing headless runs and inspecting content.

Usage:
    python cli.py run --seed 42 --faction cog_dominion --difficulty 2
    python cli.py map --stage 0
    python cli.py relics --rarity epic
    python cli.py rewards --tier 3 --samples 5
"""

import argparse
import json
import logging
import random
import sys
from typing import Any, Dict, List, Optional

from packages.ironwars import (
    ContentCatalog, ContentError, EngineConfig, JsonSaveStore, MemorySaveStore,
    NodeType, NotificationBus, RelicEngine, RelicRarity, RunProgression, Stage,
    load_config,
)

logger = logging.getLogger("ironwars.cli")


# =============================================================================
# OUTPUT FORMATTING
# =============================================================================

NODE_SYMBOLS = {
    NodeType.BATTLE: "B",
    NodeType.ELITE: "E",
    NodeType.BOSS: "X",
    NodeType.EVENT: "?",
    NodeType.SHOP: "$",
    NodeType.RECRUITMENT: "R",
    NodeType.REST: "Z",
}


def format_stage(stage: Stage) -> str:
    """Format a stage graph as an adjacency listing."""
    lines = [f"Stage {stage.index}: {stage.name} ({stage.id})"]
    for node in stage.nodes:
        symbol = NODE_SYMBOLS.get(node.type, "?")
        marker = "*" if node.id == stage.boss_node_id else " "
        edges = ", ".join(node.next_node_ids) if node.next_node_ids else "-"
        lines.append(f"  [{symbol}]{marker} {node.id:<14} tier {node.tier}  -> {edges}")
    if stage.next_stage_id:
        lines.append(f"  next stage: {stage.next_stage_id}")
    return "\n".join(lines)


def format_relic_line(relic) -> str:
    effect = relic.effect
    amount = effect.value or effect.percent_value
    costs = ", ".join(f"{c.kind.value}{'_' + str(c.magnitude) if c.magnitude else ''}"
                      for c in effect.costs)
    line = f"  {relic.id:<18} {relic.rarity.value:<10} {effect.type}({amount}) on {effect.trigger.value}"
    if effect.condition:
        line += f" if {effect.condition}"
    if costs:
        line += f"  cost: {costs}"
    return line


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


# =============================================================================
# SETUP
# =============================================================================

def build_catalog(args, config: EngineConfig) -> ContentCatalog:
    path = args.content or config.content_path
    if path:
        return ContentCatalog.from_json(path)
    return ContentCatalog.default()


def build_progression(args, config: EngineConfig, catalog: ContentCatalog) -> RunProgression:
    rng = random.Random(args.seed)
    bus = NotificationBus()
    engine = RelicEngine(catalog, rng=rng, bus=bus)
    store = JsonSaveStore(args.save) if getattr(args, "save", None) else MemorySaveStore()
    return RunProgression(catalog, engine, store, bus=bus, config=config, rng=rng)


# =============================================================================
# COMMANDS
# =============================================================================

def cmd_run(args, config: EngineConfig) -> int:
    """Play a headless run, choosing random accessible nodes until it ends."""
    catalog = build_catalog(args, config)
    run = build_progression(args, config, catalog)
    rng = run.rng

    state = run.start_new_run(args.faction, args.difficulty)
    if not args.json:
        print(f"Seed: {args.seed}  Faction: {state.faction_id}  Difficulty: {state.difficulty}")
        print(f"Fortress: {state.fortress_hp}/{state.fortress_max_hp}  Gold: {state.gold}")
        print(f"Relics: {', '.join(state.relics) or '-'}")
        print()

    log: List[Dict[str, Any]] = []
    steps = 0
    while not run.is_run_complete() and steps < args.max_nodes:
        accessible = run.get_accessible_node_ids()
        if not accessible:
            logger.warning("No accessible nodes; stopping")
            break
        node_id = rng.choice(accessible)
        run.move_to_node(node_id)
        node = run.get_node_snapshot(node_id)

        # Stand-in for the combat loop
        damage = 0
        if node.type in (NodeType.BATTLE, NodeType.ELITE, NodeType.BOSS):
            damage = run.damage_fortress(rng.randint(5, 15) * node.tier)
        elif node.type == NodeType.REST:
            run.heal_fortress(run.get_run_state().fortress_max_hp * 3 // 10)
        elif node.type == NodeType.SHOP:
            offer = run.build_shop_offer(node.reward_tier)
            if offer and offer.relic and run.get_gold() >= offer.relic.price:
                run.purchase(offer.relic)

        completion = run.complete_node(node_id)
        if completion is None:
            break
        if completion.relic_choices:
            run.add_relic(completion.relic_choices[0].id)

        state = run.get_run_state()
        entry = {
            "node": node_id,
            "type": node.type.value,
            "damage": damage,
            "gold_awarded": completion.gold_awarded,
            "relic_choices": [r.id for r in completion.relic_choices],
            "fortress_hp": state.fortress_hp,
            "gold": state.gold,
        }
        log.append(entry)
        if not args.json:
            picked = f"  relic: {entry['relic_choices'][0]}" if entry["relic_choices"] else ""
            print(f"{node_id:<14} {node.type.value:<12} dmg {damage:>3}  gold +{completion.gold_awarded:<4}"
                  f" HP {state.fortress_hp}/{state.fortress_max_hp}{picked}")
            if completion.stage_completed and not completion.run_completed:
                print(f"--- Stage {state.current_stage_index} ---")
        steps += 1

        if state.fortress_hp <= 0:
            break

    state = run.get_run_state()
    summary = {
        "complete": state.is_complete,
        "fortress_hp": state.fortress_hp,
        "fortress_max_hp": state.fortress_max_hp,
        "gold": state.gold,
        "relics": state.relics,
        "nodes": log,
    }
    if args.json:
        print_json(summary)
    else:
        print()
        outcome = "VICTORY" if state.is_complete else ("DEFEAT" if state.fortress_hp <= 0 else "STOPPED")
        print(f"{outcome}: HP {state.fortress_hp}/{state.fortress_max_hp}, gold {state.gold}")
        print(f"Relics: {', '.join(state.relics)}")
    return 0


def cmd_map(args, config: EngineConfig) -> int:
    """Print a stage graph."""
    catalog = build_catalog(args, config)
    stages = catalog.get_all_stages() if args.stage is None else [catalog.get_stage_by_index(args.stage)]
    if any(s is None for s in stages):
        print(f"Unknown stage: {args.stage}")
        return 1
    if args.json:
        print_json([s.to_dict() for s in stages])
    else:
        print("\n\n".join(format_stage(s) for s in stages))
    return 0


def cmd_relics(args, config: EngineConfig) -> int:
    """List catalog relics."""
    catalog = build_catalog(args, config)
    relics = catalog.get_all_relics()
    if args.rarity:
        relics = [r for r in relics if r.rarity == RelicRarity(args.rarity)]
    if args.json:
        print_json([{"id": r.id, "name": r.name, "rarity": r.rarity.value,
                     "effect": r.effect.type, "trigger": r.effect.trigger.value} for r in relics])
    else:
        print(f"{len(relics)} relics:")
        for relic in relics:
            print(format_relic_line(relic))
    return 0


def cmd_rewards(args, config: EngineConfig) -> int:
    """Sample relic rewards for a tier."""
    catalog = build_catalog(args, config)
    engine = RelicEngine(catalog, rng=random.Random(args.seed))
    samples = []
    for _ in range(args.samples):
        choices = engine.generate_relic_reward(args.tier, count=args.count)
        samples.append([r.id for r in choices])
    if args.json:
        print_json({"tier": args.tier, "samples": samples})
    else:
        print(f"Tier {args.tier} relic rewards (seed {args.seed}):")
        for i, sample in enumerate(samples, 1):
            print(f"  {i}: {', '.join(sample) or '(none)'}")
    return 0


# =============================================================================
# MAIN
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="IronWars run engine - headless runs and content inspection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s run --seed 42 --difficulty 2
  %(prog)s map --stage 1
  %(prog)s relics --rarity cursed
  %(prog)s rewards --tier 3 --samples 5
        """
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--content", "-c", help="Content JSON file (default: built-in content)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser("run", help="Play a headless run")
    run_parser.add_argument("--seed", "-s", type=int, default=0, help="RNG seed")
    run_parser.add_argument("--faction", "-f", default="cog_dominion", help="Faction id")
    run_parser.add_argument("--difficulty", "-d", type=int, default=0, help="Difficulty level")
    run_parser.add_argument("--max-nodes", type=int, default=100, help="Stop after this many nodes")
    run_parser.add_argument("--save", help="Persist to this JSON save file")
    run_parser.add_argument("--json", "-j", action="store_true", help="Output in JSON format")

    # Map command
    map_parser = subparsers.add_parser("map", help="Display stage graphs")
    map_parser.add_argument("--stage", type=int, help="Stage index (default: all)")
    map_parser.add_argument("--json", "-j", action="store_true", help="Output in JSON format")

    # Relics command
    relics_parser = subparsers.add_parser("relics", help="List relics")
    relics_parser.add_argument("--rarity", choices=[r.value for r in RelicRarity], help="Filter by rarity")
    relics_parser.add_argument("--json", "-j", action="store_true", help="Output in JSON format")

    # Rewards command
    rewards_parser = subparsers.add_parser("rewards", help="Sample relic rewards for a tier")
    rewards_parser.add_argument("--tier", "-t", type=int, default=1, help="Node reward tier")
    rewards_parser.add_argument("--count", "-n", type=int, default=3, help="Choices per reward")
    rewards_parser.add_argument("--samples", type=int, default=1, help="Number of rewards to roll")
    rewards_parser.add_argument("--seed", "-s", type=int, default=0, help="RNG seed")
    rewards_parser.add_argument("--json", "-j", action="store_true", help="Output in JSON format")

    args = parser.parse_args(argv)

    config = load_config()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 1

    # Dispatch to command handler
    commands = {
        "run": cmd_run,
        "map": cmd_map,
        "relics": cmd_relics,
        "rewards": cmd_rewards,
    }

    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 1
    try:
        return handler(args, config)
    except ContentError as e:
        print(f"Content error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
