# ABOUTME: File routing logic for conversions
# ABOUTME: Determines the format of input and output files from their extensions

from pathlib import Path
from typing import Tuple

SUPPORTED_SUFFIXES = {
    '.ply': 'ply',
    '.ply.gz': 'ply',
    '.spz': 'spz',
}


class FileRouter:
    """Determines which loader and writer handle a given file."""

    @staticmethod
    def detect_format(path: Path) -> str:
        """
        Determine the file format.

        Args:
            path: Path to a gaussian file

        Returns:
            'ply' or 'spz'
        """
        name = Path(path).name.lower()
        for suffix in sorted(SUPPORTED_SUFFIXES, key=len, reverse=True):
            if name.endswith(suffix):
                return SUPPORTED_SUFFIXES[suffix]
        raise ValueError(
            f"Unsupported file type: {Path(path).suffix}\n"
            f"Supported: {sorted(SUPPORTED_SUFFIXES)}"
        )

    @staticmethod
    def route(input_file: Path, output_file: Path) -> Tuple[str, str]:
        """
        Determine the formats on both sides of a conversion.

        Returns:
            Tuple of (input_format, output_format)
        """
        return FileRouter.detect_format(input_file), FileRouter.detect_format(output_file)

    @staticmethod
    def get_description(input_file: Path, output_file: Path) -> str:
        """Get human-readable description of the conversion."""
        input_format, output_format = FileRouter.route(input_file, output_file)
        if input_format == output_format:
            return f"{input_format.upper()} re-encode"
        return f"{input_format.upper()} -> {output_format.upper()}"
