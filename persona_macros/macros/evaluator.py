"""
Macro evaluation pipeline.

Runs the macro passes over a piece of text in a fixed order. Each pass scans
the whole string once; text inserted by one pass is seen by the passes after
it but never re-scanned by the pass that produced it.
"""

import logging
import uuid
from typing import Any, Dict, Iterable, Mapping, Optional

from persona_macros.config.models import MacroEngineConfig

from . import replacers
from .chat_queries import get_chat_id_hash
from .context import Escape, MacroContext, identity
from .dice import DiceRoller
from .registry import MacroRegistry

logger = logging.getLogger(__name__)


class MacroEvaluator:
    """
    Expands {{macro}} placeholders.

    Registered macros from the injected registry are merged into the
    environment of every call and take precedence over call-site entries.
    """

    def __init__(
        self,
        registry: MacroRegistry,
        config: Optional[MacroEngineConfig] = None,
        dice=None
    ):
        """
        Initialize the evaluator.

        Args:
            registry: Registry of plugin macros
            config: Engine configuration (defaults if omitted)
            dice: Dice collaborator with validate()/roll(); a DiceRoller
                built from the config limits is used if omitted
        """
        self.registry = registry
        self.config = config or MacroEngineConfig()
        self.dice = dice or DiceRoller(
            max_dice=self.config.dice.max_dice,
            max_sides=self.config.dice.max_sides,
        )

    def evaluate(
        self,
        content: Optional[str],
        env: Optional[Mapping[str, Any]] = None,
        escape: Optional[Escape] = None,
        context: Optional[MacroContext] = None
    ) -> str:
        """
        Substitute macros in a string.

        Args:
            content: Text containing macros
            env: Macro name to value. Callable values are invoked for every
                occurrence and receive the evaluation nonce.
            escape: Applied to every substituted value
            context: Chat and UI state; an empty context if omitted

        Returns:
            Text with macros substituted
        """
        if not content:
            return ""

        escape = escape or identity
        context = context or MacroContext()
        env: Dict[str, Any] = dict(env or {})
        config = self.config

        raw_content = content

        content = replacers.replace_legacy_tags(content, env, escape)

        if "{{" not in content:
            return content

        content = replacers.dice_roll_replace(content, self.dice, config.invalid_roll_placeholder, escape)

        if context.instruct_pass is not None:
            content = context.instruct_pass(content, env, escape)
        if context.variable_pass is not None:
            content = context.variable_pass(content, escape)

        content = replacers.NEWLINE_PATTERN.sub(lambda m: escape("\n"), content)
        content = replacers.TRIM_PATTERN.sub("", content)
        content = replacers.NOOP_PATTERN.sub("", content)
        content = replacers.INPUT_PATTERN.sub(lambda m: escape(str(context.input_text or "")), content)

        self.registry.populate_env(env)
        nonce = str(uuid.uuid4())
        content = replacers.replace_env_macros(content, env, nonce, escape)

        max_context_size = context.max_context_size
        if max_context_size is None:
            max_context_size = config.default_max_context_size
        content = replacers.replace_chat_macros(content, context, max_context_size, escape)

        content = replacers.strip_comments(content)

        now = context.now()
        content = replacers.replace_time_macros(content, now, config.time_formats, escape)
        content = replacers.replace_idle_duration(content, context.chat, now)
        content = replacers.time_utc_replace(content, now, config.time_formats.time, escape)
        content = replacers.time_diff_replace(content, escape)

        ban_sink = context.on_banned_word if context.main_api == config.ban_list_backend else None
        content = replacers.banned_words_replace(content, ban_sink)

        content = replacers.random_replace(content, config.empty_list_placeholder, escape)

        if replacers.PICK_PATTERN.search(content):
            chat_id_hash = get_chat_id_hash(context.chat_metadata, context.chat_id)
            content = replacers.pick_replace(
                content, raw_content, chat_id_hash, config.empty_list_placeholder, escape
            )

        return content

    def evaluate_fields(
        self,
        data: Mapping[str, Any],
        fields: Iterable[str],
        env: Optional[Mapping[str, Any]] = None,
        escape: Optional[Escape] = None,
        context: Optional[MacroContext] = None
    ) -> Dict[str, Any]:
        """
        Evaluate macros in selected text fields of a mapping.

        String fields are evaluated, list fields have each string item
        evaluated, other values are kept as-is. Returns a copy.

        Args:
            data: Mapping such as a character card
            fields: Names of the fields to evaluate
        """
        processed = dict(data)
        for field in fields:
            value = processed.get(field)
            if not value:
                continue
            if isinstance(value, str):
                processed[field] = self.evaluate(value, env, escape, context)
            elif isinstance(value, list):
                processed[field] = [
                    self.evaluate(item, env, escape, context) if isinstance(item, str) else item
                    for item in value
                ]
        return processed
