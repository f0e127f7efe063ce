from typing import Dict, List, Optional, Tuple
import logging

from domain_dedup.errors import PreconditionViolation
from domain_dedup.validator import validate_domain


logger = logging.getLogger(__name__)


class TrieNode:
    def __init__(self, label: str) -> None:
        self.label = label
        # true when a rule ends here, such a node never has children
        self.explicit_end = False
        # insertion order of the labels decides the output order
        self.children: Dict[str, "TrieNode"] = {}

    def get_child(self, label: str) -> Optional["TrieNode"]:
        return self.children.get(label)

    def add_child(self, node: "TrieNode") -> None:
        """
        Adds the node as a child. Everything below an explicit end is
        already covered by it, so nothing may be added there.
        """
        if self.explicit_end:
            raise PreconditionViolation(
                f"Can't add {node.label!r} below explicit end {self.label!r}"
            )
        if node.label in self.children:
            raise PreconditionViolation(
                f"Label {node.label!r} already present below {self.label!r}"
            )

        self.children[node.label] = node

    def is_explicit_end(self) -> bool:
        return self.explicit_end

    def make_explicit_end(self) -> None:
        """
        Marks the node as the end of a rule, the subtree is dropped
        as every domain in it is covered now
        """
        self.explicit_end = True
        self.children = {}

    def to_list(self) -> List[str]:
        """
        Returns the domains of the subtree, each with the labels of this node
        and its descendants, but without the labels of its ancestors.

        Uses an explicit stack, the order equals a depth first walk
        over the children in insertion order.
        """
        result = []
        # (node, ".<parent>.<grandparent>" up to self), only the root adds nothing
        stack: List[Tuple[TrieNode, str]] = [(self, "")]

        while stack:
            node, suffix = stack.pop()

            if node.explicit_end:
                result.append(node.label + suffix)
                continue

            if node is not self or node.label:
                suffix = f".{node.label}{suffix}"

            for child in reversed(list(node.children.values())):
                stack.append((child, suffix))

        return result


class DomainTrie:
    """
    Tree of domain labels, TLD closest to the root.
    A rule on a domain covers all of its subdomains:
        example.com, www.example.com -> example.com

    The trie is not thread safe, insertions have to happen one by one
    from a single owner.
    """

    def __init__(self) -> None:
        self.root = TrieNode("")

    def insert(self, candidate: str) -> bool:
        """
        Validate a raw candidate and add it to the trie.

        Returns:
            True if inserted, False if the candidate was rejected
        """
        if not isinstance(candidate, str):
            raise PreconditionViolation(
                f"Can't insert a non string value: {candidate!r}"
            )

        domain = validate_domain(candidate)
        if domain is None:
            logger.warning(f"Domain does not match schema, skipping: {candidate!r}")
            return False

        self.insert_validated(domain)
        return True

    def insert_validated(self, domain: str) -> None:
        """
        Insert an already validated domain.

        Walks the labels TLD first. The walk stops as soon as an explicit end
        is met, the domain is covered already. The node reached last is marked
        as an explicit end, which drops anything below it.
        """
        if not isinstance(domain, str):
            raise PreconditionViolation(
                f"Can't insert a non string value: {domain!r}"
            )
        if not domain:
            raise PreconditionViolation("Domain is empty.")

        labels = domain.split(".")[::-1]
        cur = self.root

        for label in labels:
            if cur.is_explicit_end():
                logger.debug(f"{domain} is covered by an existing rule")
                break

            child = cur.get_child(label)
            if child is None:
                child = TrieNode(label)
                cur.add_child(child)
            cur = child

        cur.make_explicit_end()

    def enumerate(self) -> List[str]:
        """
        Returns the minimal list of domains covering every inserted domain
        """
        return self.root.to_list()

    def node_count(self) -> int:
        """
        Number of nodes, including the root
        """
        count = 0
        stack = [self.root]
        while stack:
            node = stack.pop()
            count += 1
            stack.extend(node.children.values())
        return count

    def purge_trie(self) -> None:
        """
        Empty the whole trie, by assigning a new root
        """
        self.root = TrieNode("")

    def pretty_print(self) -> None:
        """Print the trie structure for debugging"""
        print("Current domain tree: \n")
        self._pretty_print_recursive(self.root, 0)

    def _pretty_print_recursive(self, node: TrieNode, level: int) -> None:
        indent = "  " * level
        if node.explicit_end:
            print(f"{indent}{node.label} *")
        elif node.label:
            print(f"{indent}{node.label}")

        for child in node.children.values():
            self._pretty_print_recursive(child, level + 1)
