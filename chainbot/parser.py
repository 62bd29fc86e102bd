"""Command chain parser.

Turns the raw chain text (the message minus its prefix) into a
CommandChain tree. Parsing never executes anything: sub-chains and
previous-result markers stay symbolic and are resolved by the
dispatcher when the argument holding them is evaluated.

Advanced grammar (default symbols)::

    chain      := invocation ( '>' invocation )*
    invocation := name [ ':' ] argument*
    argument   := ( text | '"' quoted '"' | '[' chain ']' | '\\' char )+
                | '~'

Whitespace outside quotes separates arguments. Outside sub-chains a
backslash makes the next character literal; inside a sub-chain it is
an ordinary character. Quoted text is taken verbatim, except that a
backslash right before the closing quote keeps that quote in the text.
A '[' also ends a command name. An unmatched ']' is an ordinary character;
an unterminated quote or sub-chain runs to the end of the input.

Key functions:
    parse_chain: Parse advanced-mode chain text.
    parse_simple: Whitespace split into a single invocation.
    parse: Pick one of the two based on Attributes.
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple, Union

import structlog

from .attributes import Attributes
from .exceptions import ChainDepthError

logger = structlog.get_logger("chainbot.parser")

ESCAPE = "\\"


@dataclass(frozen=True)
class Text:
    """Literal text inside an argument."""
    value: str


@dataclass(frozen=True)
class PreviousResult:
    """Stands for the result of the preceding invocation in the same chain."""


@dataclass(frozen=True)
class SubChain:
    """A nested chain whose result is spliced into the argument."""
    chain: "CommandChain"


Part = Union[Text, PreviousResult, SubChain]


@dataclass(frozen=True)
class Argument:
    """One argument token, made of parts concatenated at execution time."""
    parts: Tuple[Part, ...]

    @property
    def literal(self) -> Optional[str]:
        """The argument's value if it is plain text, else None."""
        if all(isinstance(p, Text) for p in self.parts):
            return "".join(p.value for p in self.parts)
        return None


@dataclass(frozen=True)
class Invocation:
    """A single command call: its name and unevaluated arguments."""
    name: str
    arguments: Tuple[Argument, ...] = ()


@dataclass(frozen=True)
class CommandChain:
    """Ordered invocations executed one after another."""
    invocations: Tuple[Invocation, ...] = ()

    def __len__(self) -> int:
        return len(self.invocations)

    def __iter__(self) -> Iterator[Invocation]:
        return iter(self.invocations)


def text_argument(value: str) -> Argument:
    return Argument((Text(value),))


class _ChainParser:
    """Recursive-descent parser over one chain string."""

    def __init__(self, text: str, attributes: Attributes):
        self.text = text
        self.attrs = attributes
        self.pos = 0

    def _at_end(self) -> bool:
        return self.pos >= len(self.text)

    def _peek(self) -> str:
        return self.text[self.pos]

    def _skip_whitespace(self) -> None:
        while not self._at_end() and self._peek().isspace():
            self.pos += 1

    def _segment_end(self, nested: bool) -> bool:
        if self._at_end():
            return True
        ch = self._peek()
        return ch == self.attrs.chain_delimiter or (
            nested and ch == self.attrs.sub_chain_end
        )

    def parse(self) -> CommandChain:
        return self._chain(depth=0, nested=False)

    def _chain(self, depth: int, nested: bool) -> CommandChain:
        if depth > self.attrs.max_chain_depth:
            raise ChainDepthError(
                "Sub-chain nesting too deep",
                max_depth=self.attrs.max_chain_depth,
            )

        invocations: List[Invocation] = []
        while True:
            invocation = self._invocation(depth, nested)
            if invocation is not None:
                invocations.append(invocation)

            if self._at_end():
                if nested:
                    logger.debug("sub_chain_unterminated", depth=depth)
                break

            ch = self._peek()
            self.pos += 1
            if ch == self.attrs.chain_delimiter:
                continue
            # Closing symbol of this sub-chain
            break

        return CommandChain(tuple(invocations))

    def _escape_at(self, depth: int) -> bool:
        return (
            depth == 0
            and self._peek() == ESCAPE
            and self.pos + 1 < len(self.text)
        )

    def _invocation(self, depth: int, nested: bool) -> Optional[Invocation]:
        self._skip_whitespace()
        name = self._name(depth, nested)

        self._skip_whitespace()
        if not self._at_end() and self._peek() == self.attrs.chain_args_delim:
            self.pos += 1

        arguments: List[Argument] = []
        while True:
            self._skip_whitespace()
            if self._segment_end(nested):
                break
            arguments.append(self._argument(depth, nested))

        if not name:
            if arguments:
                logger.debug("invocation_without_name", arguments=len(arguments))
            return None
        return Invocation(name, tuple(arguments))

    def _name(self, depth: int, nested: bool) -> str:
        chars: List[str] = []
        while not self._at_end():
            ch = self._peek()
            if (
                ch.isspace()
                or ch == self.attrs.chain_args_delim
                or ch == self.attrs.sub_chain_start
                or self._segment_end(nested)
            ):
                break
            if self._escape_at(depth):
                chars.append(self.text[self.pos + 1])
                self.pos += 2
                continue
            chars.append(ch)
            self.pos += 1
        return "".join(chars)

    def _argument(self, depth: int, nested: bool) -> Argument:
        parts: List[Part] = []
        buffer: List[str] = []
        bare = True

        def flush() -> None:
            if buffer:
                parts.append(Text("".join(buffer)))
                buffer.clear()

        while not self._at_end():
            ch = self._peek()
            if ch.isspace() or self._segment_end(nested):
                break

            if self._escape_at(depth):
                buffer.append(self.text[self.pos + 1])
                self.pos += 2
                bare = False
            elif ch == self.attrs.quote_start:
                self.pos += 1
                buffer.append(self._quoted())
                bare = False
            elif ch == self.attrs.sub_chain_start:
                self.pos += 1
                flush()
                parts.append(SubChain(self._chain(depth + 1, nested=True)))
                bare = False
            else:
                buffer.append(ch)
                self.pos += 1

        if bare and "".join(buffer) == self.attrs.previous:
            return Argument((PreviousResult(),))

        flush()
        if not parts:
            # Empty quotes still form an argument
            parts.append(Text(""))
        return Argument(tuple(parts))

    def _quoted(self) -> str:
        chars: List[str] = []
        quote_end = self.attrs.quote_end
        while not self._at_end():
            ch = self._peek()
            if ch == ESCAPE and self.text.startswith(quote_end, self.pos + 1):
                chars.append(quote_end)
                self.pos += 2
                continue
            self.pos += 1
            if ch == self.attrs.quote_end:
                return "".join(chars)
            chars.append(ch)
        logger.debug("quote_unterminated")
        return "".join(chars)


def parse_chain(text: str, attributes: Attributes) -> CommandChain:
    """Parse advanced-mode chain text into a CommandChain.

    Raises:
        ChainDepthError: If sub-chains nest deeper than
            ``attributes.max_chain_depth``.
    """
    return _ChainParser(text, attributes).parse()


def parse_simple(text: str) -> CommandChain:
    """Split on whitespace: first token is the command, the rest arguments."""
    tokens = text.split()
    if not tokens:
        return CommandChain()
    return CommandChain(
        (Invocation(tokens[0], tuple(text_argument(t) for t in tokens[1:])),)
    )


def parse(text: str, attributes: Attributes) -> CommandChain:
    """Parse chain text according to the bot's mode."""
    if attributes.advanced_functionality:
        return parse_chain(text, attributes)
    return parse_simple(text)
