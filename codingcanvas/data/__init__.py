from importlib_resources import files as _files

sources = {
    "english": _files("codingcanvas") / "data/stopwords_en.txt",
    "domain": _files("codingcanvas") / "data/stopwords_domain.txt",
}


def load_stop_words(name: str) -> frozenset:
    """Read one of the bundled stop-word lists (one word per line)."""
    if name not in sources:
        raise KeyError(f"Unknown stop-word list: {name}. Expected one of: {list(sources)}")
    text = sources[name].read_text(encoding="utf-8")
    return frozenset(
        line.strip().lower()
        for line in text.splitlines()
        if line.strip() and not line.startswith("#")
    )


def __dir__():
    return list(sources)
