"""This module represents the implementation of a prefix trie that's
used for longest-prefix lookups and prefix completion of strings.
"""

from collections.abc import Iterator, Mapping
from typing import Any, Optional


class TrieNode:
    """Represent a node in the trie structure."""

    def __init__(self) -> None:
        """Initialize a new Trie node.

        Attributes:
            children (dict): A dictionary mapping characters to
            their corresponding child TrieNode instances.
            is_terminal (bool): Indicates whether the path from the root
            to this node spells a string that was inserted.

        """
        # A dictionary to store child nodes (character: TrieNode)
        self.children: dict[str, TrieNode] = {}
        # Boolean flag to indicate if this node marks an inserted string
        self.is_terminal = False

    def strings(self) -> Iterator[str]:
        """Lazily yield every suffix below this node that ends at a
        terminal node.

        A terminal child yields its own suffix and then every longer
        suffix through its children, so nested inserted strings along one
        branch are all produced. The walk keeps its own stack, so the
        depth of the trie is not bounded by the recursion limit.

        Yields:
            str: A suffix to append to this node's spelled path.

        """
        stack = [("", iter(self.children.items()))]
        while stack:
            suffix, children = stack[-1]
            for char, child in children:
                path = suffix + char
                if child.is_terminal:
                    yield path
                stack.append((path, iter(child.children.items())))
                break
            else:
                stack.pop()


class PrefixTrie:
    """Represents the prefix trie data structure."""

    def __init__(self) -> None:
        """Initialize the root node of the Trie."""
        self.root = TrieNode()

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "PrefixTrie":
        """Build a trie from the keys of an existing mapping.

        Values are ignored and no reference to the mapping is kept, so the
        trie can be used to find which prefix of an input has an entry.

        Args:
            mapping (Mapping): Any mapping keyed by strings.

        Returns:
            PrefixTrie: A trie holding every key of the mapping.

        """
        trie = cls()
        for key in mapping:
            trie.insert(key)
        return trie

    def insert(self, word: str) -> None:
        """Insert a new word into the trie.

        Inserting the same word again leaves the trie unchanged. The empty
        string marks the root itself as terminal.

        Args:
            word (str): The word to be inserted into the Trie structure.

        """
        node = self.root
        for char in word:
            # If the character is not already a child, add a new TrieNode
            if char not in node.children:
                node.children[char] = TrieNode()
            # Move to the child node
            node = node.children[char]
        # There may be more children below an inserted word
        node.is_terminal = True

    def _walk(self, word: str) -> tuple[TrieNode, int]:
        """Follow `word` from the root until a character has no child.

        Args:
            word (str): The input to walk.

        Returns:
            tuple: The node reached and the number of matched characters.

        """
        node = self.root
        matched = 0
        for char in word:
            next_node = node.children.get(char)
            if next_node is None:
                break
            node = next_node
            matched += 1
        return node, matched

    def longest_prefix_match(
        self,
        word: str,
        backtrack: bool = False,
    ) -> Optional[str]:
        """Return the longest inserted string that is a prefix of `word`.

        Only the node where the walk stops is checked. With "a" and "abc"
        inserted, "abx" stops on the non-terminal node "ab" and gives
        None even though "a" was inserted. Pass `backtrack=True` to get
        the longest terminal node seen anywhere along the walk instead.

        Args:
            word (str): The input to match against the trie.
            backtrack (bool, optional): Fall back to the last terminal
            node crossed on the way. Defaults to False.

        Returns:
            Optional[str]: The matching prefix, or None when there is no
            non-empty match.

        """
        if not backtrack:
            node, matched = self._walk(word)
            if matched > 0 and node.is_terminal:
                return word[:matched]
            return None

        node = self.root
        longest = 0
        for i, char in enumerate(word, start=1):
            next_node = node.children.get(char)
            if next_node is None:
                break
            node = next_node
            if node.is_terminal:
                longest = i
        return word[:longest] if longest > 0 else None

    def iter_completions(self, word: str) -> Iterator[str]:
        """Lazily resolve a partial input against the trie.

        Yields the matched part of `word` when it ends on a terminal node.
        When all of `word` was matched, every inserted string extending it
        follows, in no guaranteed order.

        Args:
            word (str): The partial input.

        Yields:
            str: Complete inserted strings corresponding to `word`.

        """
        node, matched = self._walk(word)
        prefix = word[:matched]
        if matched > 0 and node.is_terminal:
            yield prefix
        if node is not self.root and matched == len(word):
            for suffix in node.strings():
                yield prefix + suffix

    def match_completions(self, word: str) -> list[str]:
        """Return the list form of `iter_completions`.

        Args:
            word (str): The partial input.

        Returns:
            list[str]: The completions, empty when nothing matches.

        """
        return list(self.iter_completions(word))

    def __contains__(self, word: object) -> bool:
        """Check for the existence of a given word in the trie.

        Args:
            word (str): The word to search for in the Trie structure.

        Returns:
            bool: True if the exact `word` is present
            in the trie as an inserted string, False otherwise.

        """
        if not isinstance(word, str):
            return False
        node = self.root
        for char in word:
            # If the character is not found, the word does not exist
            if char not in node.children:
                return False
            node = node.children[char]
        return node.is_terminal

    def __iter__(self) -> Iterator[str]:
        if self.root.is_terminal:
            yield ""
        yield from self.root.strings()

    def __len__(self) -> int:
        return sum(1 for _ in self)
