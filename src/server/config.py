"""Configuration parser for the prefix lookup server."""

from pathlib import Path
from typing import cast


class ConfigBoolParsingError(Exception):
    """Raised when the parsing of bool strings in
    the config file was not successful.
    """


class ConfigNotFoundError(Exception):
    """Raised when any of the configuration settings is not provided."""


class ServerConfig:
    """A class to save server configuration settings."""

    def __init__(
        self,
        vocabulary_path: Path,
        reread_on_query: bool,
        port: int,
        use_ssl: bool,
        max_completions: int = 0,
        backtrack: bool = False,
    ) -> None:
        """Initialize the server configuration.

        Args:
            vocabulary_path (Path): The path to the vocabulary file,
            one string per line.
            reread_on_query (bool): Whether to rebuild the trie from the
            vocabulary file for every query.
            port (int): The port number the server will listen to.
            use_ssl (bool): Whether the server should use SSL.
            max_completions (int, optional): Maximum number of completions
            returned per query, 0 for no limit. Defaults to 0.
            backtrack (bool, optional): Whether longest prefix lookups fall
            back to shorter inserted prefixes. Defaults to False.

        """
        self.vocabulary_path = vocabulary_path
        self.reread_on_query = reread_on_query
        self.port = port
        self.use_ssl = use_ssl
        self.max_completions = max_completions
        self.backtrack = backtrack

    def __repr__(self) -> str:
        """Return a string representation of the configuration object.

        Returns:
            str: A formatted string representing the configuration settings.

        """
        limit = self.max_completions or "unlimited"
        return f"""
                Server configuration settings:
                Vocabulary path: {self.vocabulary_path}
                Re-read on query: {"YES" if self.reread_on_query else "NO"}
                SSL enabled: {"YES" if self.use_ssl else "NO"}
                Used port number: {self.port}
                Max completions: {limit}
                Backtracking: {"YES" if self.backtrack else "NO"}
            """


def parse_bool(key: str, val: str) -> bool:
    """Parse given values into boolean ones (True or False).

    Args:
        key (str): The key to parse the boolean for.
        val (str): The value to be parsed to boolean.

    Raises:
        ConfigBoolParsingError: If an error occured
        while parsing the value to boolean.

    Returns:
        bool: True or False depending on the output of the parser.

    """
    if val.strip().lower() in {"true", "1", "yes"}:
        return True
    if val.strip().lower() in {"false", "0", "no"}:
        return False

    raise ConfigBoolParsingError(
        f"Invalid boolean value for key '{key}' in the configuration file. "
        "Expected 'true', 'false', '1', '0', 'yes', or 'no' "
        "(case-insensitive).",
    )


def load_config_file(config_file_path: Path) -> ServerConfig:
    """Load and parse the configuration file.

    Args:
        config_file_path (Path): Path to the config file.

    Raises:
        ConfigNotFoundError: If required settings are missing.
        ConfigBoolParsingError: If a boolean setting can't be parsed.
        ValueError: If a numeric setting is invalid.
        FileNotFoundError: If a file does not exist.

    Returns:
        ServerConfig: Parsed config object.

    """
    if not config_file_path.exists():
        raise FileNotFoundError(
            f"Missing required configuration file: '{config_file_path}'. "
            "Please ensure the file exists and the path is correct.",
        )

    vocabulary_path = reread_on_query = port = use_ssl = None
    max_completions = 0
    backtrack = False

    with config_file_path.open("r", encoding="utf-8") as file:
        for line in file:
            line = line.strip()

            # Skip blank lines and comments
            if not line or line.startswith("#"):
                continue

            key, sep, value = line.partition("=")
            if sep != "=":
                continue

            key = key.strip().lower()
            value = value.strip()

            if key == "vocabulary_path":
                vocabulary_path = Path(value)
            elif key == "reread_on_query":
                reread_on_query = parse_bool("reread_on_query", value)
            elif key == "use_ssl":
                use_ssl = parse_bool("use_ssl", value)
            elif key == "port":
                port = int(value)
            elif key == "max_completions":
                max_completions = int(value)
                if max_completions < 0:
                    raise ValueError(
                        "Invalid value for 'max_completions': "
                        f"{max_completions}. Expected 0 or a positive "
                        "number.",
                    )
            elif key == "backtrack":
                backtrack = parse_bool("backtrack", value)

    required = {
        "vocabulary_path": vocabulary_path,
        "reread_on_query": reread_on_query,
        "port": port,
        "use_ssl": use_ssl,
    }

    for key, val in required.items():
        if val is None:
            raise ConfigNotFoundError(
                f"Missing required configuration: '{key}'. "
                "Please ensure the config file includes a valid line for "
                f"'{key}'.",
            )

    # Relative vocabulary paths are relative to the config file
    vocabulary_path = cast("Path", vocabulary_path)
    if not vocabulary_path.is_absolute():
        vocabulary_path = config_file_path.parent / vocabulary_path

    if not vocabulary_path.exists():
        raise FileNotFoundError(
            f"The required file {vocabulary_path} doesn't exist.",
        )

    return ServerConfig(
        vocabulary_path,
        cast("bool", reread_on_query),
        cast("int", port),
        cast("bool", use_ssl),
        max_completions,
        backtrack,
    )
