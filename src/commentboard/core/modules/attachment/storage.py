"""File storage operations for attachments."""

from pathlib import Path


def get_blob_path(attachments_path: str, blob_name: str) -> Path:
    """Get absolute path to a stored blob.

    Args:
        attachments_path: Base path for attachments storage
        blob_name: Relative blob name, e.g. "images/1700000000000-ab12cd34-cat.png.jpg"

    Returns:
        Absolute path to blob file

    Raises:
        ValueError: If the name escapes the storage directory
    """
    root = Path(attachments_path).resolve()
    file_path = (root / blob_name).resolve()
    if not file_path.is_relative_to(root) or file_path == root:
        raise ValueError(f"Invalid blob name: {blob_name}")
    return file_path


def write_blob(attachments_path: str, blob_name: str, content: bytes) -> Path:
    """Write blob to disk.

    Returns:
        Absolute path to written file
    """
    file_path = get_blob_path(attachments_path, blob_name)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_bytes(content)
    return file_path


def delete_blob(attachments_path: str, blob_name: str) -> None:
    """Remove a blob if it exists."""
    get_blob_path(attachments_path, blob_name).unlink(missing_ok=True)


def build_blob_url(attachments_url: str, blob_name: str) -> str:
    """Build the public locator of a stored blob."""
    return f"{attachments_url.rstrip('/')}/{blob_name}"
