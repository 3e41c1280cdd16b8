import itertools

import pytest

from src.custom_data_structures.Trie.Trie import PrefixTrie, TrieNode

ROUTES = ["/", "/api", "/api/users", "/api/users/me", "/static"]


@pytest.fixture
def trie():
    return PrefixTrie()


@pytest.fixture
def route_trie():
    route_trie = PrefixTrie()
    for route in ROUTES:
        route_trie.insert(route)
    return route_trie


# Test insert
def test_insert_creates_path_and_terminal(trie):
    trie.insert("ab")

    a_node = trie.root.children["a"]
    b_node = a_node.children["b"]
    assert a_node.is_terminal is False
    assert b_node.is_terminal is True
    assert b_node.children == {}
    assert trie.root.is_terminal is False


def test_insert_shares_common_prefix(trie):
    trie.insert("car")
    trie.insert("cat")

    assert list(trie.root.children) == ["c"]
    assert set(trie.root.children["c"].children["a"].children) == {"r", "t"}


def test_insert_is_idempotent(trie):
    trie.insert("hello")
    before = (trie.match_completions("he"), trie.longest_prefix_match("hi"))

    trie.insert("hello")

    after = (trie.match_completions("he"), trie.longest_prefix_match("hi"))
    assert before == after
    assert len(trie) == 1


def test_insert_empty_string_marks_root(trie):
    trie.insert("")

    assert trie.root.is_terminal is True
    assert trie.root.children == {}
    assert "" in trie
    assert len(trie) == 1


def test_empty_string_never_returned_by_queries(trie):
    trie.insert("")
    trie.insert("x")

    assert trie.longest_prefix_match("") is None
    assert trie.longest_prefix_match("y") is None
    assert trie.match_completions("") == []
    assert trie.match_completions("y") == []


@pytest.mark.parametrize("route", ROUTES)
def test_inserted_string_matches_itself(route_trie, route):
    assert route_trie.longest_prefix_match(route) == route


# Test longest_prefix_match
def test_longest_prefix_match_extends_past_inserted(trie):
    trie.insert("ab")
    assert trie.longest_prefix_match("abc") == "ab"


def test_longest_prefix_match_does_not_backtrack(trie):
    trie.insert("a")
    trie.insert("abc")

    # Stops on the non-terminal "ab" node, "a" is not recovered
    assert trie.longest_prefix_match("abx") is None


def test_longest_prefix_match_backtrack_option(trie):
    trie.insert("a")
    trie.insert("abc")

    assert trie.longest_prefix_match("abx", backtrack=True) == "a"
    assert trie.longest_prefix_match("abcd", backtrack=True) == "abc"
    assert trie.longest_prefix_match("x", backtrack=True) is None
    assert trie.longest_prefix_match("", backtrack=True) is None


def test_longest_prefix_match_empty_trie(trie):
    assert trie.longest_prefix_match("anything") is None


def test_longest_prefix_match_empty_input(trie):
    trie.insert("x")
    assert trie.longest_prefix_match("") is None


def test_strict_prefix_is_not_a_false_positive(trie):
    trie.insert("hello")

    assert trie.longest_prefix_match("hell") is None
    assert trie.longest_prefix_match("h") is None

    trie.insert("hell")
    assert trie.longest_prefix_match("hell") == "hell"


def test_longest_prefix_match_freezes_after_mismatch(trie):
    trie.insert("ac")

    # "c" is a child of "a" but comes after the mismatching "b"
    assert trie.longest_prefix_match("abc") is None


def test_longest_prefix_match_routes(route_trie):
    assert route_trie.longest_prefix_match("/api/users/me/x") == (
        "/api/users/me"
    )
    assert route_trie.longest_prefix_match("/api/users/42") is None
    assert route_trie.longest_prefix_match("/api/users") == "/api/users"
    assert route_trie.longest_prefix_match("/img") == "/"
    assert route_trie.longest_prefix_match("api") is None


# Test match_completions
def test_match_completions_scenario(trie):
    for word in ["cat", "car", "care"]:
        trie.insert(word)

    assert set(trie.match_completions("ca")) == {"cat", "car", "care"}
    assert len(trie.match_completions("ca")) == 3


def test_match_completions_exact_leaf(trie):
    trie.insert("cat")
    trie.insert("dog")

    assert trie.match_completions("cat") == ["cat"]


def test_match_completions_terminal_with_children(trie):
    for word in ["car", "care", "cart", "careful"]:
        trie.insert(word)

    result = trie.match_completions("car")

    assert sorted(result) == ["car", "care", "careful", "cart"]
    assert result[0] == "car"


def test_match_completions_empty_trie(trie):
    assert trie.match_completions("anything") == []


def test_match_completions_partial_match_on_terminal(trie):
    trie.insert("ab")
    trie.insert("abcd")

    # Input is not fully matched, so only the terminal reached is returned
    assert trie.match_completions("abx") == ["ab"]


def test_match_completions_partial_match_not_terminal(trie):
    trie.insert("abcd")
    assert trie.match_completions("abx") == []


def test_match_completions_empty_input(trie):
    trie.insert("a")
    trie.insert("b")

    # The walk stays on the root, nothing is enumerated
    assert trie.match_completions("") == []


def test_match_completions_longer_than_vocabulary(trie):
    trie.insert("ab")
    assert trie.match_completions("abc") == ["ab"]


def test_match_completions_routes(route_trie):
    assert set(route_trie.match_completions("/api")) == {
        "/api",
        "/api/users",
        "/api/users/me",
    }
    assert set(route_trie.match_completions("/")) == set(ROUTES)
    assert set(route_trie.match_completions("/api/u")) == {
        "/api/users",
        "/api/users/me",
    }


def test_iter_completions_is_lazy(route_trie):
    completions = route_trie.iter_completions("/")

    first_two = list(itertools.islice(completions, 2))

    assert len(first_two) == 2
    assert set(first_two) <= set(ROUTES)


def test_iter_completions_is_restartable(route_trie):
    first = list(route_trie.iter_completions("/api"))
    second = list(route_trie.iter_completions("/api"))

    assert first == second
    assert first == route_trie.match_completions("/api")


# Test TrieNode.strings
def test_node_strings_includes_nested_terminals():
    node = TrieNode()
    child = TrieNode()
    grandchild = TrieNode()
    child.is_terminal = True
    grandchild.is_terminal = True
    child.children["b"] = grandchild
    node.children["a"] = child

    assert list(node.strings()) == ["a", "ab"]


def test_node_strings_skips_non_terminal_leaves():
    node = TrieNode()
    node.children["a"] = TrieNode()

    assert list(node.strings()) == []


def test_node_strings_depth_first_order(trie):
    for word in ("ab", "a", "ac", "b"):
        trie.insert(word)

    assert list(trie.root.strings()) == ["a", "ab", "ac", "b"]


def test_deep_string_enumeration(trie):
    long_word = "a" * 5000
    trie.insert(long_word)
    trie.insert("a" * 10)

    assert trie.match_completions("a") == ["a" * 10, long_word]
    assert len(trie) == 2
    assert list(trie) == ["a" * 10, long_word]


# Test from_mapping
def test_from_mapping_inserts_keys():
    handlers = {"/api": object(), "/static": object(), "/api/users": None}

    built = PrefixTrie.from_mapping(handlers)

    assert set(built) == set(handlers)
    assert built.longest_prefix_match("/api/orders") == "/api"


def test_from_mapping_keeps_no_reference():
    handlers = {"/api": 1}

    built = PrefixTrie.from_mapping(handlers)
    handlers["/static"] = 2

    assert "/static" not in built
    assert len(built) == 1


def test_from_mapping_empty():
    built = PrefixTrie.from_mapping({})

    assert len(built) == 0
    assert built.longest_prefix_match("x") is None


# Test membership and iteration
def test_contains(route_trie):
    assert "/api" in route_trie
    assert "/ap" not in route_trie
    assert "/api/users/me/" not in route_trie
    assert "" not in route_trie
    assert 42 not in route_trie


def test_iter_and_len(route_trie):
    assert sorted(route_trie) == sorted(ROUTES)
    assert len(route_trie) == len(ROUTES)


def test_unicode_characters(trie):
    trie.insert("café")
    trie.insert("日本")

    assert trie.longest_prefix_match("café au lait") == "café"
    assert trie.longest_prefix_match("cafe") is None
    assert trie.match_completions("日") == ["日本"]
