"""
Restricted arithmetic evaluator for the calculate action

Expressions are tokenized and evaluated by a small recursive-descent parser.
Only numbers, the four basic operators, parentheses, commas and a fixed set of
functions are understood; nothing from the host environment is reachable.
Nesting deeper than MAX_NESTING levels is rejected rather than recursed into.

Grammar:
    expr    := term (("+" | "-") term)*
    term    := unary (("*" | "/") unary)*
    unary   := ("+" | "-") unary | primary
    primary := NUMBER | "(" expr ")" | FUNC "(" expr ("," expr)* ")"
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable

_FUNCTION_NAMES = ("sqrt", "pow", "sin", "cos", "tan", "log")
_FUNCTION_PATTERN = re.compile("|".join(_FUNCTION_NAMES), re.IGNORECASE)
_ALLOWED_CHARACTERS = re.compile(r"^[\d\s+\-*/.(),]+$")
_TOKEN_PATTERN = re.compile(r"\s*(?:(\d+\.?\d*|\.\d+)|([a-z]+)|(.))")
MAX_NESTING = 100

_FUNCTIONS: dict[str, tuple[int, Callable[..., float]]] = {
    "sqrt": (1, math.sqrt),
    "pow": (2, math.pow),
    "sin": (1, math.sin),
    "cos": (1, math.cos),
    "tan": (1, math.tan),
    "log": (1, math.log),
}


class CalculationError(ValueError):
    """Raised when an expression cannot be parsed or evaluated."""


def is_allowed_expression(expression: str) -> bool:
    """Conservative character allow-list checked before any parsing."""
    remainder = _FUNCTION_PATTERN.sub("", expression or "")
    return bool(_ALLOWED_CHARACTERS.match(remainder))


def _tokenize(expression: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    text = expression.strip().lower()
    position = 0
    while position < len(text):
        match = _TOKEN_PATTERN.match(text, position)
        if not match or match.end() == position:
            break
        number, name, symbol = match.groups()
        if number is not None:
            tokens.append(("number", number))
        elif name is not None:
            if name not in _FUNCTIONS:
                raise CalculationError(f"Unknown function: {name}")
            tokens.append(("function", name))
        elif symbol is not None and not symbol.isspace():
            if symbol not in "+-*/(),":
                raise CalculationError(f"Unexpected character: {symbol}")
            tokens.append(("symbol", symbol))
        position = match.end()
    return tokens


class _Parser:
    def __init__(self, tokens: list[tuple[str, str]]) -> None:
        self.tokens = tokens
        self.index = 0
        self.depth = 0

    def peek(self) -> tuple[str, str] | None:
        if self.index < len(self.tokens):
            return self.tokens[self.index]
        return None

    def take(self) -> tuple[str, str]:
        token = self.peek()
        if token is None:
            raise CalculationError("Unexpected end of expression")
        self.index += 1
        return token

    def expect(self, symbol: str) -> None:
        kind, value = self.take()
        if kind != "symbol" or value != symbol:
            raise CalculationError(f"Expected '{symbol}' but found '{value}'")

    def at_symbol(self, *symbols: str) -> bool:
        token = self.peek()
        return token is not None and token[0] == "symbol" and token[1] in symbols

    def descend(self) -> None:
        self.depth += 1
        if self.depth > MAX_NESTING:
            raise CalculationError("Expression is nested too deeply")

    def parse(self) -> float:
        if not self.tokens:
            raise CalculationError("Empty expression")
        value = self.expr()
        if self.peek() is not None:
            raise CalculationError(f"Unexpected token '{self.peek()[1]}'")
        return value

    def expr(self) -> float:
        value = self.term()
        while self.at_symbol("+", "-"):
            _, op = self.take()
            right = self.term()
            value = value + right if op == "+" else value - right
        return value

    def term(self) -> float:
        value = self.unary()
        while self.at_symbol("*", "/"):
            _, op = self.take()
            right = self.unary()
            if op == "*":
                value = value * right
            else:
                if right == 0:
                    raise CalculationError("Division by zero")
                value = value / right
        return value

    def unary(self) -> float:
        if self.at_symbol("+", "-"):
            _, op = self.take()
            self.descend()
            operand = self.unary()
            self.depth -= 1
            return operand if op == "+" else -operand
        return self.primary()

    def primary(self) -> float:
        kind, value = self.take()
        if kind == "number":
            return float(value)
        if kind == "function":
            return self.call(value)
        if value == "(":
            self.descend()
            inner = self.expr()
            self.expect(")")
            self.depth -= 1
            return inner
        raise CalculationError(f"Unexpected token '{value}'")

    def call(self, name: str) -> float:
        arity, func = _FUNCTIONS[name]
        self.expect("(")
        self.descend()
        args = [self.expr()]
        while self.at_symbol(","):
            self.take()
            args.append(self.expr())
        self.expect(")")
        self.depth -= 1
        if len(args) != arity:
            raise CalculationError(f"{name} expects {arity} argument(s), got {len(args)}")
        try:
            return float(func(*args))
        except (ValueError, OverflowError) as exc:
            raise CalculationError(f"{name} failed: {exc}") from exc


def evaluate(expression: str) -> int | float:
    """Evaluate ``expression``; integral results come back as ``int``."""
    result = _Parser(_tokenize(expression)).parse()
    if math.isnan(result) or math.isinf(result):
        raise CalculationError("Result is not a finite number")
    if result.is_integer():
        return int(result)
    return result
