"""
Block-scoped variable table

Tracks `$name: value` declarations and sprite-map bindings while a file tree
is parsed, so sprite directives can resolve `$variable` arguments.

Scoping rules:
- `{` opens a scope, `}` closes it (the root scope is never closed)
- An assignment writes to the innermost scope; the last write wins
- `!default` writes only when the name is not already visible
- `!global` writes to the root scope
- Lookup walks from the innermost scope outwards, so an inner assignment
  shadows an outer one only until its block closes
- Imported files share the importer's table at the import site
"""

from typing import Any, Dict, List, Optional


class VariableTable:
    """
    Stack of variable scopes owned by one Parser invocation

    Example:
        >>> table = VariableTable()
        >>> table.assign("hex", "#00FF00")
        >>> table.scope_push()
        >>> table.assign("hex", "#00DD00")
        >>> table.lookup("hex")
        '#00DD00'
        >>> table.scope_pop()
        >>> table.lookup("hex")
        '#00FF00'
    """

    def __init__(self) -> None:
        self.scopes: List[Dict[str, Any]] = [{}]

    @property
    def depth(self) -> int:
        """Number of open nested scopes (0 at the root)"""
        return len(self.scopes) - 1

    def scope_push(self) -> None:
        self.scopes.append({})

    def scope_pop(self) -> None:
        if len(self.scopes) > 1:
            self.scopes.pop()

    def braces_apply(self, braces: Any) -> None:
        """Open or close scopes for a sequence of '{' / '}' characters"""
        for brace in braces:
            if brace == '{':
                self.scope_push()
            elif brace == '}':
                self.scope_pop()

    def assign(self, name: str, value: Any, default: bool = False, is_global: bool = False) -> None:
        """
        Record an assignment

        Args:
            name: Variable name without the leading `$`
            value: Raw value text, or a bound object such as a SpriteSheet
            default: Only assign if `name` is not visible
            is_global: Assign in the root scope
        """
        if default and self.defined(name):
            return
        scope = self.scopes[0] if is_global else self.scopes[-1]
        scope[name] = value

    def defined(self, name: str) -> bool:
        return any(name in scope for scope in self.scopes)

    def lookup(self, name: str) -> Optional[Any]:
        """Return the visible value of `name`, or None if undefined"""
        for scope in reversed(self.scopes):
            if name in scope:
                return scope[name]
        return None
