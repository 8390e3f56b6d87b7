"""
Input validation and sanitization utilities.
"""

from typing import Iterable, List
import re

from shared_utils.error_handler import ValidationError


class InputValidator:
    """Utility class for input validation."""

    @staticmethod
    def validate_file_extension(filename: str, allowed_extensions: Iterable[str]) -> str:
        """Validate file extension.

        Args:
            filename: Filename to validate
            allowed_extensions: Allowed extensions (without dots)

        Returns:
            Validated filename

        Raises:
            ValidationError: If validation fails
        """
        allowed: List[str] = [e.lower() for e in allowed_extensions]
        if '.' not in filename:
            raise ValidationError("File must have an extension")

        ext = filename.rsplit('.', 1)[1].lower()
        if ext not in allowed:
            raise ValidationError(f"File extension .{ext} not allowed. Allowed: {allowed}")

        return filename

    @staticmethod
    def sanitize_filename(filename: str, max_length: int = 255) -> str:
        """Sanitize filename to prevent path traversal and other issues.

        Digits in the name are kept intact; the call date is parsed from them.

        Raises:
            ValidationError: If validation fails
        """
        filename = filename.replace('\\', '').replace('/', '')
        filename = re.sub(r'[<>:"|?*]', '', filename)

        if not filename:
            raise ValidationError("Filename cannot be empty")

        if '..' in filename or filename.startswith('.'):
            raise ValidationError("Invalid filename format")

        if len(filename) > max_length:
            raise ValidationError(f"Filename too long (max {max_length} characters)")

        return filename

    @staticmethod
    def validate_summary_lines(lines: List[str]) -> List[str]:
        """Validate user-edited summary lines (non-empty list of strings)."""
        if not isinstance(lines, list) or not lines:
            raise ValidationError("summary must be a non-empty list of lines")
        if not all(isinstance(line, str) for line in lines):
            raise ValidationError("summary lines must be strings")
        return [line.rstrip() for line in lines]
