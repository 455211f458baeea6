"""Parsing of chat text and inline-button payloads into closed variant sets.

Text messages become one of the command variants below; callback data
(``follow:<id>``, ``unfollow:<id>``, ``cancel``) becomes one of the
callback variants. Handlers dispatch on the variant type.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class Help:
    pass


@dataclass(frozen=True)
class Follow:
    pass


@dataclass(frozen=True)
class Unfollow:
    pass


@dataclass(frozen=True)
class MyFollows:
    pass


@dataclass(frozen=True)
class Unknown:
    """A slash command the bot does not know."""

    name: str


@dataclass(frozen=True)
class FreeText:
    """Plain text, only meaningful while a search is pending."""

    text: str


Command = Start | Help | Follow | Unfollow | MyFollows | Unknown | FreeText

_COMMANDS: dict[str, type] = {
    "/start": Start,
    "/help": Help,
    "/follow": Follow,
    "/unfollow": Unfollow,
    "/my": MyFollows,
}


def parse_command(text: str) -> Command:
    """Classify a message text.

    ``/Follow@SomeBot extra`` parses as Follow: the first word is split on
    '@' and lowercased.
    """
    stripped = text.strip()
    if not stripped.startswith("/"):
        return FreeText(stripped)

    head = stripped.split(maxsplit=1)[0]
    name = head.split("@", 1)[0].lower()
    command_cls = _COMMANDS.get(name)
    if command_cls is None:
        return Unknown(name)
    return command_cls()


# ── Callback payloads ───────────────────────────────────────────


@dataclass(frozen=True)
class FollowCallback:
    source_id: int


@dataclass(frozen=True)
class UnfollowCallback:
    source_id: int


@dataclass(frozen=True)
class CancelCallback:
    pass


@dataclass(frozen=True)
class InvalidCallback:
    data: str


@dataclass(frozen=True)
class UnknownActionCallback:
    """Well-formed ``<action>:<id>`` with an action the bot does not know."""

    action: str
    source_id: int


Callback = FollowCallback | UnfollowCallback | CancelCallback | InvalidCallback | UnknownActionCallback

CANCEL_DATA = "cancel"

_CALLBACK_ACTIONS: dict[str, type] = {
    "follow": FollowCallback,
    "unfollow": UnfollowCallback,
}


def parse_callback(data: str | None) -> Callback:
    if data == CANCEL_DATA:
        return CancelCallback()
    if not data:
        return InvalidCallback(data or "")

    action, sep, raw_id = data.partition(":")
    if not sep:
        return InvalidCallback(data)
    try:
        source_id = int(raw_id)
    except ValueError:
        return InvalidCallback(data)

    callback_cls = _CALLBACK_ACTIONS.get(action)
    if callback_cls is None:
        return UnknownActionCallback(action, source_id)
    return callback_cls(source_id)


def callback_data(callback: Callback) -> str:
    """Encode a callback variant as Telegram ``callback_data``."""
    if isinstance(callback, CancelCallback):
        return CANCEL_DATA
    if isinstance(callback, FollowCallback):
        return f"follow:{callback.source_id}"
    if isinstance(callback, UnfollowCallback):
        return f"unfollow:{callback.source_id}"
    raise ValueError(f"Cannot encode callback: {callback!r}")
