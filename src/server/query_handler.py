"""Handle client's prefix queries against a vocabulary trie."""

import itertools
import json
import logging
from pathlib import Path

from src.custom_data_structures.Trie.Trie import PrefixTrie

NO_MATCH = "NO MATCH"


def load_vocabulary(vocabulary_path: Path) -> PrefixTrie:
    """Build a trie from a vocabulary file.

    Every line of the file is one entry; line terminators are stripped and
    empty lines are skipped.

    Args:
        vocabulary_path (Path): The vocabulary file.

    Raises:
        FileNotFoundError: If the file does not exist.

    Returns:
        PrefixTrie: A trie holding every entry of the file.

    """
    try:
        with vocabulary_path.open("r", encoding="utf-8") as file:
            entries = dict.fromkeys(
                stripped
                for stripped in (line.rstrip("\r\n") for line in file)
                if stripped
            )
    except FileNotFoundError as e:
        raise FileNotFoundError(f"File not found: {vocabulary_path}") from e

    logging.info(
        "Loaded %d entries from '%s'",
        len(entries),
        vocabulary_path,
    )
    return PrefixTrie.from_mapping(entries)


def handle_query(
    trie: PrefixTrie,
    request: str,
    max_completions: int = 0,
    backtrack: bool = False,
) -> str:
    """Answer a single request against the trie.

    Requests have the form `COMMAND ARGUMENT`, separated by one space. The
    argument is used verbatim and may be empty.

    Args:
        trie (PrefixTrie): The trie to query.
        request (str): The request line without its terminator.
        max_completions (int, optional): Maximum number of completions to
        return, 0 for no limit. Defaults to 0.
        backtrack (bool, optional): Whether longest prefix lookups fall back
        to shorter inserted prefixes. Defaults to False.

    Returns:
        str: The response line.

    """
    command, _, argument = request.partition(" ")
    command = command.upper()

    if command == "LONGEST":
        match = trie.longest_prefix_match(argument, backtrack=backtrack)
        return NO_MATCH if match is None else f"PREFIX {match}"

    if command == "MATCH":
        completions = trie.iter_completions(argument)
        if max_completions > 0:
            completions = itertools.islice(completions, max_completions)
        results = sorted(completions)
        if not results:
            return NO_MATCH
        return "COMPLETIONS " + json.dumps(results, ensure_ascii=False)

    if command == "CONTAINS":
        return "STRING EXISTS" if argument in trie else "STRING NOT FOUND"

    return f"ERROR: Unknown command '{command}'"
