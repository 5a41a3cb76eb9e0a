"""Weighted two-level activity card draw: config model, validation, balancing, sampling."""

from .balancer import auto_balance_categories, auto_balance_items
from .config_model import CardCategory, Category, ConfigModel, Item, Limits, Policy
from .errors import ActivityConfigError
from .sampler import draw, make_rand
from .service import ActivityDrawService
from .validator import ValidationResult, validate

__version__ = "0.1.0"
