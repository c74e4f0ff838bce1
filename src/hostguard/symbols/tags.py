"""Closed vocabularies attached to known host-framework symbols."""

from __future__ import annotations

from enum import Enum


class SymbolTag(Enum):
    """Semantic labels that rules match on instead of raw names."""

    ASYNC_ENTRY_POINT = "AsyncEntryPoint"
    UI_THREAD_SWITCH = "UiThreadSwitch"
    BLOCKING_WAIT = "BlockingWait"
    SERVICE_LOCATOR = "ServiceLocator"
    THEME_TOKEN = "ThemeToken"
    MEF_EXPORT = "MefExport"
    COMMAND_HANDLER = "CommandHandler"

    @classmethod
    def parse(cls, value: str) -> "SymbolTag":
        wanted = value.strip().lower()
        for tag in cls:
            if tag.value.lower() == wanted or tag.name.lower() == wanted:
                return tag
        choices = ", ".join(t.value for t in cls)
        raise ValueError(f"unknown symbol tag {value!r} (choose from {choices})")


class Capability(Enum):
    """Variants of a base type, used instead of modelling its class hierarchy."""

    SUPPORTS_BACKGROUND_LOAD = "supports-background-load"
    SUPPORTS_ASYNC_INIT = "supports-async-init"


class SymbolKind(Enum):
    TYPE = "type"
    METHOD = "method"
    PROPERTY = "property"
    ATTRIBUTE = "attribute"


class AwaitStrategy(Enum):
    """How a blocking wait is rewritten into its awaiting equivalent."""

    WAIT = "wait"  # t.Wait()                      -> await t
    RESULT = "result"  # t.Result                      -> await t
    GET_RESULT = "get-result"  # t.GetAwaiter().GetResult()    -> await t
    WHEN_ALL = "when-all"  # Task.WaitAll(a, b)            -> await Task.WhenAll(a, b)
    WHEN_ANY = "when-any"  # Task.WaitAny(a, b)            -> await Task.WhenAny(a, b)
    RUN_INLINE = "run-inline"  # jtf.Run(async () => await X)  -> await X
    DELAY = "delay"  # Thread.Sleep(n)               -> await Task.Delay(n)
