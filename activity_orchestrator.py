#!/usr/bin/env python3
"""
================================================================================
 Activity Draw - Command Line Orchestrator
--------------------------------------------------------------------------------
 One entry point for the evening activity card draw:
 1. Editing the category -> item probability tree (add/rename/reweight/delete)
 2. Checking and auto-balancing the stored tree
 3. Drawing cards (one-off, daily with history, or simulated in bulk)
================================================================================
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
# Load environment variables from .env file
load_dotenv()

from activity_draw import config_manager
from activity_draw.config_model import Category, Item
from activity_draw.draw_lib import (
    check_and_balance_config,
    describe_probabilities,
    print_simulation_report,
    setup_logging,
    simulate_draws,
)
from activity_draw.errors import ActivityConfigError
from activity_draw.sampler import make_rand
from activity_draw.service import ActivityDrawService


class ActivityOrchestrator:
    """Main orchestrator class for the activity draw CLI."""

    def __init__(self, config_path: str | None, args=None, verbose: bool = False, silent: bool = False):
        self.config_path = config_path
        self.verbose = verbose
        self.silent = silent
        self.seed: Optional[int] = getattr(args, "seed", None)
        self.config = self._load_config(args)
        self.service = ActivityDrawService.from_config(self.config, rand=make_rand(self.seed))

    def _load_config(self, args) -> Dict[str, Any]:
        """Load defaults + user config, then apply CLI overrides."""
        try:
            config = config_manager.load_config(self.config_path)
        except FileNotFoundError:
            logging.error(f"❌ Config file not found: {self.config_path}")
            sys.exit(1)
        if self.config_path:
            logging.debug(f"Configuration loaded from {self.config_path}")
        if args is not None:
            config = config_manager.apply_cli_overrides(config, args)
        return config

    @property
    def store_path(self) -> Path:
        return Path(self.config["store"]["config_path"])

    # -------- name resolution --------

    def _category(self, name: str) -> Category:
        return self.service.model.get_category_by_name(name)

    def _item(self, category: Category, name: str) -> Item:
        item = category.item_by_name(name)
        if item is None:
            raise ActivityConfigError(f'Item "{name}" not found in "{category.name}"')
        return item

    # -------- modes --------

    def display_config_summary(self):
        """Display the store locations and the current probability tree."""
        store = self.config.get("store", {})
        limits = self.config.get("limits", {})
        logging.info("\n" + "=" * 60)
        logging.info("🔧 ACTIVITY DRAW SUMMARY")
        logging.info("=" * 60)
        logging.info(f"📁 Activity config: {store.get('config_path', 'N/A')}")
        logging.info(f"📁 Draw history: {store.get('history_path', 'N/A')}")
        logging.info(
            f"📏 Limits: {limits.get('max_categories', 'N/A')} categories, "
            f"{limits.get('max_items_per_category', 'N/A')} items per category"
        )
        logging.info("")
        for line in describe_probabilities(self.service.model):
            logging.info(f"   {line}")
        result = self.service.validate()
        if result.valid:
            logging.info("\n✅ Probabilities are consistent")
        else:
            logging.warning(f"\n⚠️  {result.message}")
        logging.info("=" * 60)

    def check_mode(self, save: bool = False, balance: bool = False) -> bool:
        """Check the stored tree; optionally balance and save it."""
        logging.info("\n🔍 CONFIGURATION CHECK MODE")
        logging.info("=" * 50)
        # materializes the default tree on first use
        self.service.model
        model = check_and_balance_config(str(self.store_path), save=save, balance=balance, config=self.config)
        if model is None:
            logging.error("❌ Configuration check failed. Fix the errors above or run with --balance.")
            return False
        if save:
            self.service.reload()
        else:
            logging.info("📋 Configuration check complete - use --save to write changes")
        return True

    def balance_mode(self, category_name: Optional[str] = None):
        if category_name is None:
            model = self.service.auto_balance()
            logging.info("⚖️  Categories and items balanced")
        else:
            model = self.service.auto_balance_items(self._category(category_name).id)
            logging.info(f'⚖️  Items of "{category_name}" balanced')
        for line in describe_probabilities(model):
            logging.info(f"   {line}")

    def draw_mode(self):
        outcome = self.service.request_draw()
        logging.info(f"🎴 {outcome.category_name} / {outcome.item_name}")
        return outcome

    def today_mode(self, custom: Optional[str] = None) -> bool:
        """Draw today's card; a custom card needs content from --custom or a prompt."""
        record = self.service.draw_today()
        if record.payload != self.service.policy.custom_payload:
            return True
        if custom is None and sys.stdin.isatty():
            custom = input("What do you want to do tonight? ").strip()
        if not custom:
            logging.warning("⚠️  Custom card not recorded: pass --custom TEXT to keep it")
            return False
        self.service.confirm_custom(record, custom)
        return True

    def clear_today_mode(self):
        if self.service.clear_today():
            logging.info("🧹 Today's card cleared")
        else:
            logging.info("ℹ️  No card recorded today")

    def history_mode(self, limit: Optional[int] = None):
        records = self.service.history.recent(limit)
        if not records:
            logging.info("ℹ️  No cards drawn yet")
            return
        logging.info("\n📜 DRAW HISTORY")
        for record in records:
            logging.info(f"   {record.date}  {record.category_name:<6} {record.label}")

    def simulate_mode(self, draws: int):
        logging.info(f"\n🎲 SIMULATING {draws} DRAWS" + (f" (seed {self.seed})" if self.seed is not None else ""))
        model = self.service.drawable_model
        metrics = simulate_draws(model, draws, self.seed, show_progress=not self.silent)
        print_simulation_report(model, metrics)
        return metrics

    def reset_mode(self):
        self.service.reset()
        for line in describe_probabilities(self.service.model):
            logging.info(f"   {line}")

    def edit_mode(self, args) -> None:
        """Apply the single edit named on the command line."""
        service = self.service
        if args.add_category:
            category = service.add_category(args.add_category, args.tag or "custom")
            logging.info(f'➕ Category "{category.name}" added')
        elif args.add_item:
            category_name, name = args.add_item
            item = service.add_item(self._category(category_name).id, name, args.payload)
            logging.info(f'➕ Item "{item.name}" added to "{category_name}"')
        elif args.set_percent:
            category_name, percent = args.set_percent
            service.update_category(self._category(category_name).id, probability=percent / 100)
            logging.info(f'✏️  "{category_name}" set to {percent}%')
        elif args.set_item_percent:
            category_name, item_name, percent = args.set_item_percent
            category = self._category(category_name)
            service.update_item(category.id, self._item(category, item_name).id, probability=int(percent) / 100)
            logging.info(f'✏️  "{category_name}/{item_name}" set to {percent}%')
        elif args.rename_category:
            old, new = args.rename_category
            service.update_category(self._category(old).id, name=new)
            logging.info(f'✏️  Category "{old}" renamed to "{new}"')
        elif args.rename_item:
            category_name, old, new = args.rename_item
            category = self._category(category_name)
            service.update_item(category.id, self._item(category, old).id, name=new)
            logging.info(f'✏️  Item "{old}" renamed to "{new}"')
        elif args.delete_category:
            service.delete_category(self._category(args.delete_category).id)
            logging.info(f'🗑️  Category "{args.delete_category}" deleted')
        elif args.delete_item:
            category_name, item_name = args.delete_item
            category = self._category(category_name)
            service.delete_item(category.id, self._item(category, item_name).id)
            logging.info(f'🗑️  Item "{item_name}" deleted from "{category_name}"')
        elif args.reorder:
            service.reorder([self._category(name).id for name in args.reorder])
            logging.info("🔀 Categories reordered")
        for line in describe_probabilities(service.model):
            logging.debug(f"   {line}")


EDIT_FLAGS = (
    "add_category",
    "add_item",
    "set_percent",
    "set_item_percent",
    "rename_category",
    "rename_item",
    "delete_category",
    "delete_item",
    "reorder",
)


def build_parser():
    parser = argparse.ArgumentParser(
        description="Activity Draw - weighted evening activity cards",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                    # Show the probability tree
  %(prog)s --draw                             # Draw one card (not recorded)
  %(prog)s --today                            # Draw today's card and record it
  %(prog)s --today --custom "去公园散步"        # Today's card, text for a custom draw
  %(prog)s --history 7                        # Last 7 cards
  %(prog)s --simulate 10000 --seed 42         # Check the distribution empirically
  %(prog)s --check                            # Validate the stored tree
  %(prog)s --check --balance --save           # Balance evenly and write back
  %(prog)s --add-category 运动 --tag outdoor   # New category before 自定义
  %(prog)s --add-item 运动 跑步                 # New item in a category
  %(prog)s --set-percent 运动 10               # Reweight; 自定义 takes the rest
  %(prog)s my_config.yml --store data/alt.yml # Custom settings and store
        """
    )

    parser.add_argument(
        "config",
        nargs="?",
        default=None,
        help="Path to a settings file merged over the defaults (or $ACTIVITY_DRAW_CONFIG)"
    )
    parser.add_argument("--store", metavar="PATH", help="Activity config file to read and write")
    parser.add_argument("--history-file", metavar="PATH", help="Draw history file")
    parser.add_argument(
        "--strict", action="store_true", help="Reject edits that push the custom category below 0%%"
    )

    parser.add_argument("--check", action="store_true", help="Validate the stored activity config")
    parser.add_argument("--save", action="store_true", help="Write the checked config back (with --check)")
    parser.add_argument("--balance", action="store_true", help="Spread 100%% evenly over categories and items")
    parser.add_argument("--balance-items", metavar="CATEGORY", help="Spread a category's percent over its items")

    parser.add_argument("--draw", action="store_true", help="Draw one card without recording it")
    parser.add_argument("--today", action="store_true", help="Draw and record today's card")
    parser.add_argument("--custom", metavar="TEXT", help="Content for a custom card (with --today)")
    parser.add_argument("--clear-today", action="store_true", help="Forget today's card")
    parser.add_argument("--history", nargs="?", type=int, const=0, metavar="N", help="Show the last N cards")
    parser.add_argument("--simulate", type=int, metavar="N", help="Run N draws and report frequencies")
    parser.add_argument("--seed", type=int, help="Seed for --draw/--today/--simulate")
    parser.add_argument("--reset", action="store_true", help="Restore the default activity config")

    parser.add_argument("--add-category", metavar="NAME", help="Add a category")
    parser.add_argument("--tag", help="Tag for --add-category (research, appreciation, ...)")
    parser.add_argument("--add-item", nargs=2, metavar=("CATEGORY", "NAME"), help="Add an item")
    parser.add_argument("--payload", help="Payload for --add-item")
    parser.add_argument("--set-percent", nargs=2, metavar=("CATEGORY", "N"), help="Set a category's percent")
    parser.add_argument(
        "--set-item-percent", nargs=3, metavar=("CATEGORY", "ITEM", "N"), help="Set an item's percent"
    )
    parser.add_argument("--rename-category", nargs=2, metavar=("OLD", "NEW"), help="Rename a category")
    parser.add_argument("--rename-item", nargs=3, metavar=("CATEGORY", "OLD", "NEW"), help="Rename an item")
    parser.add_argument("--delete-category", metavar="NAME", help="Delete a category and its items")
    parser.add_argument("--delete-item", nargs=2, metavar=("CATEGORY", "ITEM"), help="Delete an item")
    parser.add_argument("--reorder", nargs="+", metavar="NAME", help="New category order")

    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument("--silent", "-s", action="store_true", help="Enable silent logging (errors only)")
    return parser


def main(argv=None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.set_percent:
        try:
            args.set_percent = (args.set_percent[0], int(args.set_percent[1]))
        except ValueError:
            parser.error("--set-percent expects a whole number of percent")
    if args.set_item_percent and not args.set_item_percent[2].lstrip("-").isdigit():
        parser.error("--set-item-percent expects a whole number of percent")

    # Validate argument combinations
    if args.save and not args.check:
        parser.error("--save can only be used with --check")
    if args.custom is not None and not args.today:
        parser.error("--custom can only be used with --today")
    if args.tag and not args.add_category:
        parser.error("--tag can only be used with --add-category")
    if args.payload and not args.add_item:
        parser.error("--payload can only be used with --add-item")
    edits = [flag for flag in EDIT_FLAGS if getattr(args, flag)]
    if len(edits) > 1:
        parser.error("only one edit can be applied per call")

    setup_logging(verbose=args.verbose, silent=args.silent)

    ok = True
    try:
        orchestrator = ActivityOrchestrator(args.config, args, verbose=args.verbose, silent=args.silent)
        if args.reset:
            orchestrator.reset_mode()
        if edits:
            orchestrator.edit_mode(args)
        if args.balance_items:
            orchestrator.balance_mode(args.balance_items)
        if args.check:
            ok = orchestrator.check_mode(save=args.save, balance=args.balance)
        elif args.balance:
            orchestrator.balance_mode()
        if args.clear_today:
            orchestrator.clear_today_mode()
        if args.draw:
            orchestrator.draw_mode()
        if args.today:
            ok = orchestrator.today_mode(args.custom) and ok
        if args.simulate:
            orchestrator.simulate_mode(args.simulate)
        if args.history is not None:
            orchestrator.history_mode(args.history or None)
        if not any([
            args.reset, edits, args.balance_items, args.check, args.balance, args.clear_today,
            args.draw, args.today, args.simulate, args.history is not None,
        ]):
            orchestrator.display_config_summary()
    except ActivityConfigError as e:
        logging.error(f"❌ {e}")
        sys.exit(1)

    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
