"""
Unsafe Scanner
Counts safe/unsafe functions, expressions, impls, traits and methods in one Rust file.
Parsing is done with the Tree-sitter Rust grammar; a tree containing ERROR or
MISSING nodes is reported as a scan failure rather than partially counted.
"""

import threading
from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

import tree_sitter_languages

from core.counters import Count, CounterBlock, PerFileCounts
from core.errors import ScanError

# Expression node kinds that count once each. Plain paths, identifiers and
# literals are left out so that `f(x)` is one expression, not three.
EXPRESSION_TYPES = frozenset({
    'array_expression',
    'assignment_expression',
    'async_block',
    'await_expression',
    'binary_expression',
    'break_expression',
    'call_expression',
    'closure_expression',
    'compound_assignment_expr',
    'const_block',
    'continue_expression',
    'field_expression',
    'for_expression',
    'if_expression',
    'index_expression',
    'let_condition',
    'loop_expression',
    'macro_invocation',
    'match_expression',
    'parenthesized_expression',
    'range_expression',
    'reference_expression',
    'return_expression',
    'struct_expression',
    'try_expression',
    'tuple_expression',
    'type_cast_expression',
    'unary_expression',
    'unit_expression',
    'while_expression',
    'yield_expression',
})

ITEM_CONTAINERS = frozenset({'source_file', 'declaration_list'})
ATTRIBUTE_TYPES = frozenset({'attribute_item', 'inner_attribute_item'})
COMMENT_TYPES = frozenset({'line_comment', 'block_comment'})
TEST_ATTRIBUTES = frozenset({'#[test]', '#[cfg(test)]'})


def _compact(node) -> str:
    return "".join(node.text.decode('utf-8', errors='replace').split())


def _has_unsafe_keyword(node) -> bool:
    return any(child.type == 'unsafe' for child in node.children)


def _is_unsafe_fn(node) -> bool:
    for child in node.children:
        if child.type == 'function_modifiers':
            return _has_unsafe_keyword(child)
    return False


def _has_test_attr(node) -> bool:
    """Check the outer attributes written directly above an item."""
    sibling = node.prev_named_sibling
    while sibling is not None and (sibling.type == 'attribute_item' or sibling.type in COMMENT_TYPES):
        if sibling.type == 'attribute_item' and _compact(sibling) in TEST_ATTRIBUTES:
            return True
        sibling = sibling.prev_named_sibling
    return False


def _owner_kind(node) -> Optional[str]:
    """'impl_item' or 'trait_item' when a fn sits directly in that body, else None."""
    parent = node.parent
    if parent is not None and parent.type == 'declaration_list' and parent.parent is not None:
        if parent.parent.type in ('impl_item', 'trait_item'):
            return parent.parent.type
    return None


def _forbids_unsafe(root) -> bool:
    for child in root.named_children:
        if child.type != 'inner_attribute_item':
            continue
        text = _compact(child)
        if text.startswith('#![forbid(') and text.endswith(')]'):
            lints = text[len('#![forbid('):-len(')]')].split(',')
            if 'unsafe_code' in lints:
                return True
    return False


def _same_node(a, b) -> bool:
    return b is not None and a.type == b.type and a.start_byte == b.start_byte and a.end_byte == b.end_byte


class UnsafeScanner:
    """Analyze Rust sources for code inside `unsafe` regions."""

    def __init__(self, include_tests: bool = False):
        self.include_tests = include_tests
        self._local = threading.local()

    @property
    def parser(self):
        # Tree-sitter parsers are not safe to share between threads
        parser = getattr(self._local, 'parser', None)
        if parser is None:
            parser = tree_sitter_languages.get_parser('rust')
            self._local.parser = parser
        return parser

    def scan_file(self, file_path: Union[str, Path]) -> PerFileCounts:
        file_path = Path(file_path)
        try:
            source = file_path.read_bytes()
        except OSError as e:
            raise ScanError(file_path, f"Read error: {e.strerror or e}") from e

        try:
            source.decode('utf-8')
        except UnicodeDecodeError as e:
            raise ScanError(file_path, f"Invalid UTF-8: {e}") from e

        return self.scan_source(source, file_path)

    def scan_source(self, source: Union[str, bytes], file_path: Union[str, Path] = '<memory>') -> PerFileCounts:
        """Count one Rust source text. Raises ScanError when it does not parse."""
        if isinstance(source, str):
            source = source.encode('utf-8')

        root = self.parser.parse(source).root_node
        if root.has_error:
            raise ScanError(file_path, self._describe_error(root))

        return PerFileCounts(
            counters=self._count(root),
            forbids_unsafe=_forbids_unsafe(root),
        )

    def _count(self, root) -> CounterBlock:
        functions = Count()
        exprs = Count()
        item_impls = Count()
        item_traits = Count()
        methods = Count()

        # (node, inside an unsafe region, counted as an expression if it is one)
        stack = [(root, False, True)]
        while stack:
            node, in_unsafe, countable = stack.pop()
            kind = node.type

            if kind in ATTRIBUTE_TYPES:
                continue

            if kind in ('function_item', 'mod_item') and not self.include_tests and _has_test_attr(node):
                continue

            if kind == 'function_item':
                owner = _owner_kind(node)
                unsafe_fn = _is_unsafe_fn(node)
                if owner == 'impl_item':
                    methods = methods.count(unsafe_fn)
                elif owner is None:
                    functions = functions.count(unsafe_fn)
                # Trait default bodies are neither counted nor treated as unsafe scopes
                if owner != 'trait_item' and unsafe_fn:
                    in_unsafe = True
            elif kind == 'unsafe_block':
                in_unsafe = True
            elif kind == 'impl_item':
                item_impls = item_impls.count(_has_unsafe_keyword(node))
            elif kind == 'trait_item':
                item_traits = item_traits.count(_has_unsafe_keyword(node))
            elif kind in EXPRESSION_TYPES and countable:
                exprs = exprs.count(in_unsafe)

            # A method call `a.f()` is one expression: its callee field access is not counted.
            callee = node.child_by_field_name('function') if kind == 'call_expression' else None
            for child in reversed(node.named_children):
                if kind in ITEM_CONTAINERS and child.type == 'macro_invocation':
                    stack.append((child, in_unsafe, False))
                elif callee is not None and child.type == 'field_expression' and _same_node(child, callee):
                    stack.append((child, in_unsafe, False))
                else:
                    stack.append((child, in_unsafe, True))

        return CounterBlock(
            functions=functions,
            exprs=exprs,
            item_impls=item_impls,
            item_traits=item_traits,
            methods=methods,
        )

    @staticmethod
    def _describe_error(root) -> str:
        """Locate the first ERROR or MISSING node, in source order."""
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == 'ERROR' or node.is_missing:
                line = node.start_point[0] + 1
                col = node.start_point[1] + 1
                if node.is_missing:
                    return f"Line {line}, Col {col}: missing expected token '{node.type}'"
                return f"Line {line}, Col {col}: syntax error"
            if node.has_error:
                stack.extend(reversed(node.children))
        return "syntax error"


@lru_cache(maxsize=None)
def get_scanner(include_tests: bool = False) -> UnsafeScanner:
    return UnsafeScanner(include_tests=include_tests)


def scan_file(file_path: Union[str, Path]) -> PerFileCounts:
    return get_scanner().scan_file(file_path)
