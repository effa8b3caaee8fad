"""Assistant facade binding functions and instructions to a chat.

The Assistant resolves a provider for the message's model, runs a Responder for the turn and
turns Responder events into chat updates: streamed text, thinking indicators, tool calls and the
continuation token for the next turn.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Callable, Sequence, Type

from jinja2 import StrictUndefined, Template as JinjaTemplate
from pydantic import BaseModel, Field

from .chat import Chat, UserMessage
from .config import Settings
from .core.exceptions import ConfigurationError
from .core.function import Function
from .core.function_tool_caller import FunctionToolCaller
from .core.responder import Responder
from .domain import Ledger
from .functions import DEFAULT_FUNCTIONS
from .providers.base import LlmProvider
from .providers.registry import ProviderRegistry, build_registry
from .utilities import humanize, today

logger = logging.getLogger(__name__)

FUNCTION_MESSAGES = {
    "get_transactions": "Searching transactions...",
    "get_balance_sheet": "Calculating net worth...",
    "categorize_transactions": "Categorizing transactions...",
    "tag_transactions": "Tagging transactions...",
    "create_category": "Creating category...",
    "update_category": "Updating category...",
    "delete_category": "Deleting category...",
    "create_tag": "Creating tag...",
    "generate_donut_chart": "Generating donut chart...",
    "web_search": "Searching the web...",
}

DEFAULT_THINKING_MESSAGE = "Analyzing your data..."

instructions_template = """
## Your identity

You are a friendly financial assistant for an open source personal finance application.

## Your purpose

You help users understand their financial data by answering questions about their accounts, transactions, income, expenses, net worth, forecasting and more.

## Your rules

Follow all rules below at all times.

### General rules

- Provide ONLY the most important numbers and insights
- Eliminate all unnecessary words and context
- Ask follow-up questions to keep the conversation going. Help educate the user about their own data and entice them to ask more questions.
- Do NOT add introductions or conclusions
- Do NOT apologize or explain limitations

### Formatting rules

- Format all responses in markdown
- Format all monetary values according to the user's preferred currency
- Format dates in the user's preferred format: {{ date_format }}

#### User's preferred currency

When no currency is specified, use the user's preferred currency ({{ currency }}) for formatting and displaying monetary values.

### Rules about financial advice

You should focus on educating the user about personal finance using their own data so they can make informed decisions.

- Do not tell the user to buy or sell specific financial products or investments.
- Do not make assumptions about the user's financial situation. Use the functions available to get the data you need.

### Function calling rules

- Use the functions available to you to get user financial data and enhance your responses
- For functions that require dates, use the current date as your reference point: {{ current_date }}
- If you suspect that you do not have enough data to 100% accurately answer, be transparent about it and state exactly what
  the data you're presenting represents and what context it is in (i.e. date range, account, etc.)
{% if write_functions %}
### Write function rules

You have the ability to modify the user's financial data. Use these capabilities responsibly:

#### Available write functions:
{% for name, description in write_functions %}
- {{ name }}: {{ description }}
{% endfor %}

#### Safety guidelines for write operations:
- ALWAYS confirm with the user before making bulk changes or deleting data
- ALWAYS show the user what will be affected before applying changes
- Create categories/tags first if they don't exist before using them
{% endif %}
""".strip()


class InstructionVars(BaseModel):
    currency: str = Field(description="ISO code of the family's preferred currency")
    date_format: str = Field(description="The family's preferred date format")
    current_date: dt.date
    write_functions: list[tuple[str, str]] = Field(default_factory=list)


WRITE_FUNCTIONS = [
    ("categorize_transactions", "Assign categories to transactions"),
    ("tag_transactions", "Add tags to transactions"),
    ("create_category", "Create new categories"),
    ("update_category", "Rename categories, change icons or parents"),
    ("delete_category", "Delete categories"),
    ("create_tag", "Create new tags"),
]


def default_instructions(currency: str, date_format: str, current_date: dt.date | None = None) -> str:
    """Render the default system instructions for a family's preferences."""
    template_vars = InstructionVars(
        currency=currency,
        date_format=date_format,
        current_date=current_date or today(),
        write_functions=WRITE_FUNCTIONS,
    )
    template = JinjaTemplate(instructions_template, undefined=StrictUndefined, trim_blocks=True)
    return template.render(**dict(template_vars))


def build_thinking_message_from_names(function_names: Sequence[str]) -> str:
    """Describe what the assistant is doing while the named functions run."""
    if not function_names:
        return DEFAULT_THINKING_MESSAGE
    return " ".join(FUNCTION_MESSAGES.get(name) or f"Processing {humanize(name).lower()}..." for name in function_names)


class Assistant:
    """Answers user messages in a chat using an LLM provider and a set of functions."""

    def __init__(
        self,
        chat: Chat,
        ledger: Ledger,
        instructions: str | None = None,
        functions: Sequence[Type[Function]] = (),
        registry: ProviderRegistry | None = None,
        settings: Settings | None = None,
        timeout: float | None = None,
        on_data_changed: Callable[[], None] | None = None,
    ):
        """Initialize an Assistant.

        Parameters
        ----------
        chat : Chat
            Conversation the assistant writes replies, thinking state and errors to
        ledger : Ledger
            Financial data the functions operate on
        instructions : str | None, optional
            System instructions sent with every request, by default None
        functions : Sequence[Type[Function]], optional
            Function classes to expose to the model; instantiated per assistant, by default ()
        registry : ProviderRegistry | None, optional
            Providers to resolve models against, by default built from ``settings``
        settings : Settings | None, optional
            Runtime configuration, by default read from the environment
        timeout : float | None, optional
            Seconds allowed per turn, by default ``settings.turn_timeout``
        on_data_changed : Callable[[], None] | None, optional
            Notified when a function modifies the ledger
        """
        self.chat = chat
        self.ledger = ledger
        self.instructions = instructions
        self.settings = settings or Settings.from_env()
        self.registry = registry if registry is not None else build_registry(self.settings)
        self.timeout = timeout if timeout is not None else self.settings.turn_timeout
        self.functions = [
            fn(ledger, settings=self.settings, on_data_changed=on_data_changed) for fn in functions
        ]

    @classmethod
    def for_chat(
        cls,
        chat: Chat,
        ledger: Ledger,
        *,
        registry: ProviderRegistry | None = None,
        settings: Settings | None = None,
        on_data_changed: Callable[[], None] | None = None,
    ) -> Assistant:
        """Build an assistant with the default instructions and functions."""
        return cls(
            chat,
            ledger,
            instructions=default_instructions(ledger.currency, ledger.date_format),
            functions=DEFAULT_FUNCTIONS,
            registry=registry,
            settings=settings,
            on_data_changed=on_data_changed,
        )

    def respond_to(self, message: UserMessage) -> None:
        """Answer ``message``, recording any failure on the chat instead of raising."""
        try:
            self._respond_to(message)
        except Exception as e:
            logger.warning(f"Assistant failed to respond in chat {self.chat.id}: {e}")
            self.chat.stop_thinking()
            self.chat.add_error(e)

    def _respond_to(self, message: UserMessage) -> None:
        assistant_message = self.chat.build_assistant_message(message.ai_model)

        llm = self.registry.get_provider(message.ai_model)
        if llm is None:
            raise ConfigurationError(self._no_provider_error_message(message.ai_model))

        responder = Responder(
            message=message,
            instructions=self.instructions,
            function_tool_caller=self.function_tool_caller(),
            llm=llm,
            chat=self.chat,
            timeout=self.timeout,
        )

        @responder.on("output_text")
        def on_output_text(text: str) -> None:
            if not assistant_message.content and text:
                self.chat.stop_thinking()
            assistant_message.append_text(text)

        @responder.on("functions_starting")
        def on_functions_starting(data: dict) -> None:
            logger.info(f"Assistant received functions_starting - names: {data['function_names']}")
            self.chat.update_thinking(build_thinking_message_from_names(data["function_names"]))

        @responder.on("response")
        def on_response(data: dict) -> None:
            if data.get("function_tool_calls"):
                # the intermediate response id expects tool output, only the final one is persisted
                assistant_message.tool_calls = data["function_tool_calls"]
            elif data.get("has_pending_functions"):
                logger.warning("Not saving response id, the response still has pending function calls")
                self.chat.stop_thinking()
                if assistant_message.content:
                    assistant_message.save()
            else:
                self.chat.update_latest_response(data["id"])

        responder.respond(previous_response_id=self.chat.latest_assistant_response_id)
        self.chat.stop_thinking()

    def function_tool_caller(self) -> FunctionToolCaller:
        return FunctionToolCaller(self.functions, on_progress=self.chat.update_thinking)

    def _no_provider_error_message(self, requested_model: str) -> str:
        providers: list[LlmProvider] = self.registry.providers
        if not providers:
            return (
                f"No LLM provider configured that supports model '{requested_model}'. "
                "Please configure an LLM provider (e.g., OpenAI) in settings."
            )

        provider_details = "\n".join(
            f"  - {provider.provider_name}: {provider.supported_models_description}" for provider in providers
        )
        return (
            f"No LLM provider configured that supports model '{requested_model}'.\n\n"
            f"Available providers:\n{provider_details}\n\n"
            "Please either:\n"
            "  1. Use a supported model from the list above, or\n"
            f"  2. Configure a provider that supports '{requested_model}' in settings."
        )
