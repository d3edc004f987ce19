from pathlib import Path


__all__ = ["derived_path"]


def derived_path(path: str | Path, identifier: str, *, suffix: str | None = None) -> Path:
    """Build a sibling path by appending ``identifier`` to the file stem.

    Args:
        path: Original file, e.g. ``data/mydata.csv``
        identifier: Text appended to the stem, e.g. ``"_train"``
        suffix: Optional replacement suffix (defaults to the original one)

    Returns:
        Path such as ``data/mydata_train.csv``
    """
    path = Path(path)
    return path.with_name(f"{path.stem}{identifier}{suffix if suffix is not None else path.suffix}")
