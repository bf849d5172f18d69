"""Who may see a file."""

from typing import Optional

from app.files.models import File


def allowed(file: File, requester_id: Optional[int]) -> bool:
    """Public files are visible to everyone; private files only to their owner. Type does not matter."""
    return bool(file.is_public) or (requester_id is not None and requester_id == file.user_id)
