"""Functions the assistant may call against a family's ledger."""

from .categorize_transactions import CategorizeTransactions
from .create_category import CreateCategory
from .create_tag import CreateTag
from .delete_category import DeleteCategory
from .generate_donut_chart import GenerateDonutChart
from .get_balance_sheet import GetBalanceSheet
from .get_transactions import GetTransactions
from .suggest_options import SuggestOptions
from .tag_transactions import TagTransactions
from .update_category import UpdateCategory
from .web_search import WebSearch

DEFAULT_FUNCTIONS = (
    GetTransactions,
    GetBalanceSheet,
    CategorizeTransactions,
    TagTransactions,
    CreateCategory,
    UpdateCategory,
    DeleteCategory,
    CreateTag,
    GenerateDonutChart,
    SuggestOptions,
    WebSearch,
)

__all__ = [
    "DEFAULT_FUNCTIONS",
    # Read
    "GetBalanceSheet",
    "GetTransactions",
    # Write
    "CategorizeTransactions",
    "CreateCategory",
    "CreateTag",
    "DeleteCategory",
    "TagTransactions",
    "UpdateCategory",
    # Charts
    "GenerateDonutChart",
    # Interaction
    "SuggestOptions",
    "WebSearch",
]
