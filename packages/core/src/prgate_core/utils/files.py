import fnmatch


def has_extension(file_name: str, extensions: list[str]) -> bool:
    """Return True if file_name ends with one of ``extensions``.

    An empty list accepts every file.
    """
    if not extensions:
        return True
    return any(file_name.endswith(ext) for ext in extensions)


def is_excluded(filename: str, patterns: list[str]) -> bool:
    """Return True if filename matches any exclude pattern.

    Supports:
    - fnmatch globs on the full path: "src/generated/*.py"
    - fnmatch globs on the basename: "*_pb2.py"
    - Directory names/prefixes: "migrations/", "tests" (matches any file within that tree)
    """
    for pattern in patterns:
        if fnmatch.fnmatch(filename, pattern):
            return True
        if fnmatch.fnmatch(filename.rsplit("/", 1)[-1], pattern):
            return True
        prefix = pattern.rstrip("/") + "/"
        if filename.startswith(prefix) or ("/" + prefix) in filename:
            return True
    return False


def select_files(files: list[str], extensions: list[str], exclude: list[str]) -> list[str]:
    """Keep files matching an extension and no exclude pattern, preserving order."""
    return [f for f in files if has_extension(f, extensions) and not is_excluded(f, exclude)]
