"""
Helpers shared by the CLI: logging setup, the check-and-balance pass over a
stored tree, a one-line-per-category summary and draw simulation.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from . import config_manager
from .balancer import auto_balance_categories
from .config_model import ConfigModel, Limits, Policy
from .errors import ActivityConfigError
from .metrics import DrawMetrics
from .sampler import draw, make_rand
from .store import YamlConfigStore
from .validator import ValidationResult, validate


def setup_logging(verbose=False, silent=False):
    """Setup logging based on verbose and silent parameters.

    Args:
        verbose: If True, show DEBUG level with timestamps; if False, show INFO level
        silent: If True, only show ERROR level and above (overrides verbose)
    """
    if silent:
        logging.basicConfig(
            level=logging.ERROR,
            format="%(message)s",
            force=True
        )
    elif verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(levelname)s - %(message)s",
            force=True
        )
    else:
        # INFO level for normal user-facing information
        logging.basicConfig(
            level=logging.INFO,
            format="%(message)s",
            force=True
        )


def describe_probabilities(model: ConfigModel) -> list[str]:
    """One line per category: `name NN%: item NN%, item NN%`."""
    lines = []
    for category in model.categories:
        line = f"{category.name} {category.percent}%"
        if category.items:
            line += ": " + ", ".join(f"{i.name} {i.percent}%" for i in category.items)
        lines.append(line)
    return lines


def check_and_balance_config(
    store_path: str,
    save: bool = False,
    balance: bool = False,
    *,
    config: Optional[Dict[str, Any]] = None,
) -> Optional[ConfigModel]:
    """Validate a stored activity tree, optionally auto-balance it and write it back.

    Args:
        store_path: path to the persisted tree (YAML)
        save: write the (balanced) tree back to store_path
        balance: auto-balance categories and items before the final check
        config: merged config supplying limits/policy; packaged defaults if omitted

    Returns:
        The checked model, or None when the tree could not be loaded or is still invalid.
    """
    path = Path(store_path)
    if not path.exists():
        logging.error(f"❌ Activity config not found: {path}")
        return None

    config = config if config is not None else config_manager.load_defaults()
    store = YamlConfigStore(path, limits=Limits.from_config(config), policy=Policy.from_config(config))
    try:
        model = store.load()
    except ActivityConfigError as e:
        logging.error(f"❌ {e}")
        return None
    if model is None:
        logging.error(f"❌ Activity config is empty: {path}")
        return None

    logging.info("=" * 60)
    logging.info("🔍 ACTIVITY PROBABILITY CHECK")
    logging.info("=" * 60)
    for line in describe_probabilities(model):
        logging.info(f"   {line}")
    logging.info("")
    logging.info("📋 Validating probability tree...")
    logging.info("-" * 40)
    stop = _print_validation_result(validate(model))

    if balance:
        logging.info("")
        logging.info("⚖️  AUTO-BALANCE")
        logging.info("-" * 40)
        model = auto_balance_categories(model)
        for line in describe_probabilities(model):
            logging.info(f"   {line}")
        logging.info("")
        logging.info("📋 Final validation after balancing...")
        logging.info("-" * 40)
        stop = _print_validation_result(validate(model))

    if stop:
        logging.info("=" * 60)
        return None

    if save:
        store.save(model)
        logging.info("")
        logging.info("✅ CONFIGURATION SAVED")
        logging.info(f"Activity config saved to {path}")
    elif balance:
        logging.info("")
        logging.info("💾 CONFIGURATION NOT SAVED")
        logging.info("Balancing complete. Use --save to overwrite the file.")
    logging.info("=" * 60)
    return model


def _print_validation_result(result: ValidationResult) -> bool:
    """
    Print the validation outcome.
    Returns True if the tree is invalid and processing should stop.
    """
    if result.valid:
        logging.info("✅ No issues found - probabilities are consistent!")
        return False

    logging.error(f"❌ ERROR: {result.message}")
    if result.check == "total":
        logging.info("   • Adjust category percentages or run --balance")
    elif result.check == "items":
        logging.info(f'   • Adjust the items of "{result.category}" or run --balance-items "{result.category}"')
    elif result.check == "negative":
        logging.info("   • Lower the other categories until the remainder is 0% or more")
    else:
        logging.info("   • Rename one of the duplicates")
    return True


def simulate_draws(
    model: ConfigModel,
    draws: int,
    seed: Optional[int] = None,
    *,
    show_progress: bool = True,
) -> DrawMetrics:
    """Run `draws` seeded draws and count the outcomes."""
    rand = make_rand(seed)
    metrics = DrawMetrics()
    with logging_redirect_tqdm():
        for _ in tqdm(range(draws), desc="Simulating draws", unit="draw", disable=not show_progress):
            category, item = draw(model, rand)
            metrics.record(category.name, item.name)
    return metrics


def print_simulation_report(model: ConfigModel, metrics: DrawMetrics) -> None:
    observed = metrics.category_percentages()
    logging.info(f"Draws: {metrics.draws}")
    logging.info("Category distribution (configured / observed):")
    for category in model.categories:
        logging.info(
            f"  {category.name:<6} {category.total_probability * 100:6.2f}%  "
            f"{observed.get(category.name, 0.0):6.2f}%"
        )
    if metrics.draws:
        total = sum(observed.values())
        logging.info(f"Total %: {total:.2f}%")
