"""
Relationship extraction module for Graph Portal.

Turns loosely structured text into a directed graph using a fixed, ordered set of
regex patterns. No language understanding is involved: a sentence either matches
one of the syntactic forms below or contributes nothing.

Supported forms (case-insensitive, ASCII or Cyrillic tokens):
    apple is connected to banana split
    relationship: A -> B        (also "связь: A -> B")
    A -> B -> C
"""
import re
from typing import Any, Callable, Dict, List, Optional, Tuple
from logger import GLOBAL_LOGGER as log

TOKEN = r"[a-zа-яё0-9_]+"

SENTENCE_BOUNDARY = re.compile(r"[.;\n]")

RELATION_KEYWORDS = ("relationship", "связь")


def normalize_label(raw: str) -> str:
    """Trim a captured span and collapse inner whitespace runs. Case is preserved."""
    return " ".join(raw.split())


def compute_density(node_count: int, edge_count: int) -> float:
    """edges / (n * (n - 1)); not clamped, duplicate edges can push it above 1."""
    if node_count > 1:
        return edge_count / (node_count * (node_count - 1))
    return 0


class RelationshipExtractor:
    """
    Extracts nodes and directed edges from free text.

    Usage:
        extractor = RelationshipExtractor()
        result = extractor.extract("A -> B. B is connected to C")
        result["nodes"]  # [{"id": 1, "label": "A"}, ...]
    """

    # Evaluation order matters for edge order only.
    # Arrow forms capture the target by lookahead so "A -> B -> C" yields A->B and B->C.
    PATTERNS: List[Tuple[str, "re.Pattern"]] = [
        (
            "copula",
            re.compile(
                rf"({TOKEN})\s+is\s+connected\s+to\s+({TOKEN}(?:\s+{TOKEN})*)",
                re.IGNORECASE,
            ),
        ),
        (
            "labeled_arrow",
            re.compile(
                rf"(?:{'|'.join(RELATION_KEYWORDS)})\s*:\s*({TOKEN})\s*->\s*(?=({TOKEN}))",
                re.IGNORECASE,
            ),
        ),
        (
            "arrow",
            re.compile(rf"({TOKEN})\s*->\s*(?=({TOKEN}))", re.IGNORECASE),
        ),
    ]

    def __init__(
        self,
        deduplicate_edges: bool = False,
        normalizer: Callable[[str], str] = normalize_label,
    ):
        """
        Args:
            deduplicate_edges: Drop an edge whose (from, to) pair was already emitted.
                Off by default, so a labeled arrow is also counted by the bare arrow form.
            normalizer: Applied to every captured span before it becomes a label.
        """
        self.deduplicate_edges = deduplicate_edges
        self.normalizer = normalizer

    @staticmethod
    def split_sentences(text: str) -> List[str]:
        """Split on '.', ';' and newlines, dropping blank segments."""
        return [s for s in SENTENCE_BOUNDARY.split(text) if s.strip()]

    def _candidate(self, match: "re.Match") -> Optional[Tuple[str, str]]:
        source = self.normalizer(match.group(1))
        target = self.normalizer(match.group(2))
        if not source or not target:
            return None
        return source, target

    def extract_relationships(self, text: Optional[str]) -> Dict[str, List[Dict[str, Any]]]:
        """
        Runs every pattern over every sentence.

        Args:
            text (str): Raw input text. None or empty yields an empty graph.
        Returns:
            Dict[str, List]: {"nodes": [{id, label}], "edges": [{id, from, to}]}
        """
        if not text:
            return {"nodes": [], "edges": []}

        registry: Dict[str, int] = {}
        pairs: List[Tuple[str, str]] = []
        seen_pairs = set()

        for sentence in self.split_sentences(text):
            for name, regex in self.PATTERNS:
                for match in regex.finditer(sentence):
                    try:
                        candidate = self._candidate(match)
                    except Exception as e:
                        log.warning("Skipping unprocessable match", pattern=name, match=match.group(0), error=str(e))
                        continue
                    if candidate is None:
                        continue
                    if self.deduplicate_edges:
                        if candidate in seen_pairs:
                            continue
                        seen_pairs.add(candidate)

                    source, target = candidate
                    registry.setdefault(source, len(registry) + 1)
                    registry.setdefault(target, len(registry) + 1)
                    pairs.append(candidate)

        nodes = [{"id": node_id, "label": label} for label, node_id in registry.items()]
        edges = [
            {"id": index, "from": source, "to": target}
            for index, (source, target) in enumerate(pairs, start=1)
        ]
        return {"nodes": nodes, "edges": edges}

    def extract(self, text: Optional[str]) -> Dict[str, Any]:
        """
        Extracts the graph and attaches summary statistics.

        Returns:
            Dict[str, Any]: {"nodes", "edges", "stats": {nodeCount, edgeCount, density}}
        """
        result = self.extract_relationships(text)
        node_count = len(result["nodes"])
        edge_count = len(result["edges"])
        result["stats"] = {
            "nodeCount": node_count,
            "edgeCount": edge_count,
            "density": compute_density(node_count, edge_count),
        }
        log.debug("Relationships extracted", node_count=node_count, edge_count=edge_count)
        return result


def extract(text: Optional[str], deduplicate_edges: bool = False) -> Dict[str, Any]:
    """Module-level shortcut for RelationshipExtractor(...).extract(text)."""
    return RelationshipExtractor(deduplicate_edges=deduplicate_edges).extract(text)
