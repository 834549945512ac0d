# ABOUTME: Conversion orchestrator
# ABOUTME: Loads gaussians, applies limit and Hilbert sort, then saves them

import logging
from pathlib import Path
from typing import List, Sequence, Union

from ..gaussian import Gaussian
from ..hilbert import hilbert_sort
from ..ply_io import load_ply, save_ply
from ..spz_io import load_spz, save_spz
from ..utils.logging_utils import Timer
from .config import ConvertConfig
from .router import FileRouter


def load_gaussians(path: Union[str, Path]) -> List[Gaussian]:
    """Load gaussians from a PLY or spz file, chosen by extension."""
    if FileRouter.detect_format(Path(path)) == 'spz':
        return load_spz(path)
    return load_ply(path)


def save_gaussians(gaussians: Sequence[Gaussian],
                   path: Union[str, Path],
                   compress: bool = True,
                   omit_spherical_harmonics: bool = False) -> None:
    """Save gaussians to a PLY or spz file, chosen by extension."""
    if FileRouter.detect_format(Path(path)) == 'spz':
        save_spz(gaussians, path, compressed=compress,
                 omit_spherical_harmonics=omit_spherical_harmonics)
    else:
        save_ply(gaussians, path)


class Converter:
    """Runs a single file conversion described by a ConvertConfig."""

    def __init__(self, config: ConvertConfig):
        """Initialize converter with configuration."""
        self.config = config
        self.logger = logging.getLogger('spz_codec')

    def run(self) -> Path:
        """Execute the conversion and return the output path."""
        config = self.config
        self.logger.info("Converting %s -> %s (%s)", config.input_file, config.output_file,
                         FileRouter.get_description(config.input_file, config.output_file))

        with Timer("Loading", self.logger):
            gaussians = load_gaussians(config.input_file)

        if config.limit is not None and config.limit < len(gaussians):
            self.logger.info("Keeping first %d of %d gaussians", config.limit, len(gaussians))
            gaussians = gaussians[:config.limit]

        if config.use_hilbert_sort:
            with Timer("Hilbert sort", self.logger):
                gaussians = hilbert_sort(gaussians)

        with Timer("Saving", self.logger):
            save_gaussians(
                gaussians,
                config.output_file,
                compress=config.compress,
                omit_spherical_harmonics=config.omit_spherical_harmonics,
            )

        return config.output_file
