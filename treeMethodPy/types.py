from __future__ import annotations
from enum import Enum
from typing import Any, Dict, List, Literal, Union

# ==============================================================================
# 1. NODE TYPE
# ==============================================================================

ScoringMode = Literal["unweighted", "depth_weighted"]


class NodeType(Enum):
    """
    The logical type of a node in an AND/OR decomposition tree.

    - LEAF: an elementary element/subsystem, never has children.
    - AND: realized only when every child is realized.
    - OR: realized when any single child is realized.
    """
    LEAF = "Leaf"
    AND = "And"
    OR = "Or"

    def __repr__(self) -> str:
        return f"NodeType.{self.name}"

    def __str__(self) -> str:
        return self.value

    def to_json_code(self) -> int:
        """Returns the integer code used in project files (And=0, Or=1, Leaf=2)."""
        return _TYPE_TO_CODE[self]

    @classmethod
    def from_json_code(cls, code: int) -> NodeType:
        """
        Converts a project file code back to a NodeType.
        Unknown codes load as LEAF.
        """
        return _CODE_TO_TYPE.get(code, cls.LEAF)

    @classmethod
    def parse(cls, value: Union[NodeType, str, int]) -> NodeType:
        """
        Accepts a NodeType, a name ('and', 'OR', 'Leaf') or a project file code.

        Raises:
            ValueError: If a string does not name a node type.
            TypeError: For any other input.
        """
        if isinstance(value, NodeType):
            return value
        if isinstance(value, bool):
            raise TypeError(f"Cannot interpret {value!r} as a node type.")
        if isinstance(value, int):
            return cls.from_json_code(value)
        if isinstance(value, str):
            key = value.strip().upper()
            if key in cls.__members__:
                return cls[key]
            raise ValueError(f"Unknown node type '{value}'. Available types: {[t.value for t in cls]}")
        raise TypeError(f"Cannot interpret {value!r} as a node type.")


_TYPE_TO_CODE: Dict[NodeType, int] = {NodeType.AND: 0, NodeType.OR: 1, NodeType.LEAF: 2}
_CODE_TO_TYPE: Dict[int, NodeType] = {code: node_type for node_type, code in _TYPE_TO_CODE.items()}


# ==============================================================================
# 2. RESULT VALUE
# ==============================================================================

class RationalSolution:
    """
    A scored realization of the tree root: the names of the leaves that make it
    up, in the order the generator emitted them, and its integer score.
    """
    def __init__(self, elements: List[str], score: int = 0):
        self.elements = list(elements)
        self.score = int(score)

    def __repr__(self) -> str:
        return f"RationalSolution(elements={self.elements}, score={self.score})"

    def __str__(self) -> str:
        return f"{', '.join(self.elements)}  →  Score: {self.score}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RationalSolution):
            return NotImplemented
        return self.elements == other.elements and self.score == other.score

    def to_dict(self) -> Dict[str, Any]:
        """Serializes the solution to a JSON-compatible dictionary."""
        return {"elements": list(self.elements), "score": self.score}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> RationalSolution:
        return cls(elements=data.get("elements", []), score=data.get("score", 0))
