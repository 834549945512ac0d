# ABOUTME: Configuration dataclass for conversion settings
# ABOUTME: Validates user inputs and provides defaults

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .router import FileRouter


@dataclass
class ConvertConfig:
    """Configuration for converting between PLY and spz files."""

    input_file: Path
    output_file: Path
    compress: bool = True  # Gzip spz output; uncompressed output is not a valid .spz for other readers
    omit_spherical_harmonics: bool = False
    use_hilbert_sort: bool = False  # Reorder points along a Hilbert curve before saving
    limit: Optional[int] = None  # Keep only the first N gaussians

    def __post_init__(self):
        """Validate configuration after initialization."""
        # Convert paths
        self.input_file = Path(self.input_file)
        self.output_file = Path(self.output_file)

        # Check if input exists
        if not self.input_file.exists():
            raise FileNotFoundError(f"Input not found: {self.input_file}")
        if self.input_file.is_dir():
            raise ValueError(f"Input must be a file, got directory: {self.input_file}")

        # Validate file extensions
        FileRouter.route(self.input_file, self.output_file)

        # Validate limit
        if self.limit is not None and self.limit <= 0:
            raise ValueError("Limit must be a positive integer")

        # Create output directory
        self.output_file.parent.mkdir(parents=True, exist_ok=True)
