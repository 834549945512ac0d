# ABOUTME: PLY file I/O for gaussian splat format
# ABOUTME: Reads ascii/binary PLY vertex data into gaussians and writes binary little-endian PLY

import gzip
import logging
from pathlib import Path
from typing import BinaryIO, List, Sequence, Tuple, Union

import numpy as np

from .gaussian import Gaussian, GaussianCloud
from .spherical_harmonics import SphericalHarmonicsOrder

logger = logging.getLogger('spz_codec')

PLY_TYPES = {
    'char': 'i1', 'int8': 'i1',
    'uchar': 'u1', 'uint8': 'u1',
    'short': 'i2', 'int16': 'i2',
    'ushort': 'u2', 'uint16': 'u2',
    'int': 'i4', 'int32': 'i4',
    'uint': 'u4', 'uint32': 'u4',
    'float': 'f4', 'float32': 'f4',
    'double': 'f8', 'float64': 'f8',
}

POSITION_FIELDS = ['x', 'y', 'z']
NORMAL_FIELDS = ['nx', 'ny', 'nz']
COLOR_FIELDS = ['f_dc_0', 'f_dc_1', 'f_dc_2']
SCALE_FIELDS = ['scale_0', 'scale_1', 'scale_2']
# PLY stores the quaternion w first
ROTATION_FIELDS = ['rot_0', 'rot_1', 'rot_2', 'rot_3']
KNOWN_FIELDS = set(POSITION_FIELDS + NORMAL_FIELDS + COLOR_FIELDS + SCALE_FIELDS
                   + ROTATION_FIELDS + ['opacity'])


def parse_header(stream: BinaryIO) -> Tuple[str, int, List[Tuple[str, str]]]:
    """
    Parse PLY header to extract encoding, vertex count and properties.

    Returns:
        Tuple of (encoding, vertex_count, properties_list)
        properties_list is [(name, type), ...]
    """
    magic = stream.readline().decode('ascii').strip()
    if magic != 'ply':
        raise ValueError("Not a PLY file: missing 'ply' magic line")

    encoding = None
    vertex_count = 0
    properties = []

    while True:
        raw = stream.readline()
        if not raw:
            raise ValueError("Unexpected end of PLY header")
        line = raw.decode('ascii').strip()

        if line.startswith('format'):
            encoding = line.split()[1]
        elif line.startswith('element'):
            parts = line.split()
            if parts[1] != 'vertex':
                raise ValueError(f"Unknown PLY element: {parts[1]}")
            vertex_count = int(parts[2])
        elif line.startswith('property'):
            parts = line.split()
            if parts[1] == 'list':
                raise ValueError(f"List properties are not supported: {parts[-1]}")
            prop_type, prop_name = parts[1], parts[2]
            if prop_type not in PLY_TYPES:
                raise ValueError(f"Unknown PLY property type: {prop_type}")
            properties.append((prop_name, prop_type))
        elif line == 'end_header':
            break

    if encoding not in ('ascii', 'binary_little_endian', 'binary_big_endian'):
        raise ValueError(f"Unsupported PLY format: {encoding}")

    return encoding, vertex_count, properties


def _read_payload(stream: BinaryIO, encoding: str, vertex_count: int,
                  properties: List[Tuple[str, str]]) -> dict:
    """Read vertex data into a {name: (N,) float64 array} mapping."""
    names = [name for name, _ in properties]

    if encoding == 'ascii':
        tokens = stream.read().decode('ascii').split()
        needed = vertex_count * len(properties)
        if len(tokens) < needed:
            raise ValueError(f"PLY payload too short: expected {needed} values, got {len(tokens)}")
        values = np.array(tokens[:needed], dtype=np.float64).reshape(vertex_count, len(properties))
        return {name: values[:, i] for i, name in enumerate(names)}

    byte_order = '<' if encoding == 'binary_little_endian' else '>'
    dtype = np.dtype([(name, byte_order + PLY_TYPES[t]) for name, t in properties])
    data = stream.read(vertex_count * dtype.itemsize)
    if len(data) != vertex_count * dtype.itemsize:
        raise ValueError(
            f"PLY payload too short: expected {vertex_count * dtype.itemsize} bytes, got {len(data)}"
        )
    records = np.frombuffer(data, dtype=dtype, count=vertex_count)
    return {name: records[name].astype(np.float64) for name in names}


def _rest_field_index(name: str) -> int:
    return int(name[len('f_rest_'):])


def load_ply_stream(stream: BinaryIO) -> List[Gaussian]:
    """
    Load gaussians from a PLY byte stream.

    Args:
        stream: Binary stream positioned at the start of the PLY header

    Returns:
        List of gaussians
    """
    encoding, vertex_count, properties = parse_header(stream)
    logger.debug("PLY header: %s, %d vertices, %d properties", encoding, vertex_count, len(properties))

    rest_fields = []
    for name, _ in properties:
        if name.startswith('f_rest_'):
            rest_fields.append(name)
        elif name not in KNOWN_FIELDS:
            raise ValueError(f"Unexpected PLY vertex property: {name}")

    fields = _read_payload(stream, encoding, vertex_count, properties)
    n = vertex_count

    def columns(names: List[str], defaults) -> np.ndarray:
        out = np.tile(np.asarray(defaults, dtype=np.float32), (n, 1))
        for i, name in enumerate(names):
            if name in fields:
                out[:, i] = fields[name]
        return out

    positions = columns(POSITION_FIELDS, [0.0, 0.0, 0.0])
    scales = columns(SCALE_FIELDS, [1.0, 1.0, 1.0])
    colors = columns(COLOR_FIELDS, [0.0, 0.0, 0.0])
    wxyz = columns(ROTATION_FIELDS, [1.0, 0.0, 0.0, 0.0])
    rotations = wxyz[:, [1, 2, 3, 0]]
    alphas = fields['opacity'].astype(np.float32) if 'opacity' in fields else np.zeros(n, dtype=np.float32)

    # PLY orders SH channel-major (all red, then green, then blue); the codec
    # stores coefficient-major RGB vectors.
    order = SphericalHarmonicsOrder.from_scalar_count(len(rest_fields))
    sh = np.zeros((n, order.scalar_count), dtype=np.float32)
    per_channel = order.vector_count
    for name in rest_fields:
        k = _rest_field_index(name)
        if k >= order.scalar_count:
            raise ValueError(f"PLY field {name} out of range for {len(rest_fields)} SH fields")
        channel, coefficient = divmod(k, per_channel)
        sh[:, coefficient * 3 + channel] = fields[name]

    cloud = GaussianCloud(
        positions=positions,
        rotations=rotations,
        scales=scales,
        colors=colors,
        alphas=alphas,
        sh=sh,
        sh_order=order,
    )
    return cloud.to_gaussians()


def load_ply(filepath: Union[str, Path]) -> List[Gaussian]:
    """
    Load gaussian splats from PLY file (.ply or gzipped .ply.gz).

    Args:
        filepath: Input PLY file path

    Returns:
        List of gaussians
    """
    filepath = Path(filepath)
    opener = gzip.open if filepath.suffix == '.gz' else open
    with opener(filepath, 'rb') as f:
        gaussians = load_ply_stream(f)
    logger.info("Loaded %d gaussians from %s", len(gaussians), filepath)
    return gaussians


def ply_properties(order: SphericalHarmonicsOrder) -> List[str]:
    """Property names written for a given SH order, in file order."""
    rest = [f'f_rest_{i}' for i in range(order.scalar_count)]
    return (POSITION_FIELDS + NORMAL_FIELDS + COLOR_FIELDS + rest
            + ['opacity'] + SCALE_FIELDS + ROTATION_FIELDS)


def write_ply_stream(gaussians: Union[Sequence[Gaussian], GaussianCloud], stream: BinaryIO) -> None:
    """
    Write gaussians as binary little-endian PLY.

    Args:
        gaussians: Gaussians to write, all with the same SH order, or a GaussianCloud
        stream: Binary output stream
    """
    if isinstance(gaussians, GaussianCloud):
        cloud = gaussians
    else:
        cloud = GaussianCloud.from_gaussians(gaussians)
    names = ply_properties(cloud.sh_order)
    n = cloud.count

    # Write PLY header
    stream.write(b'ply\n')
    stream.write(b'format binary_little_endian 1.0\n')
    stream.write(f'element vertex {n}\n'.encode())
    for name in names:
        stream.write(f'property float {name}\n'.encode())
    stream.write(b'end_header\n')

    records = np.zeros(n, dtype=np.dtype([(name, '<f4') for name in names]))
    for i, name in enumerate(POSITION_FIELDS):
        records[name] = cloud.positions[:, i]
    # Normals stay zero
    for i, name in enumerate(COLOR_FIELDS):
        records[name] = cloud.colors[:, i]

    per_channel = cloud.sh_order.vector_count
    for coefficient in range(per_channel):
        for channel in range(3):
            records[f'f_rest_{channel * per_channel + coefficient}'] = cloud.sh[:, coefficient * 3 + channel]

    records['opacity'] = cloud.alphas
    for i, name in enumerate(SCALE_FIELDS):
        records[name] = cloud.scales[:, i]
    for name, column in zip(ROTATION_FIELDS, [3, 0, 1, 2]):
        records[name] = cloud.rotations[:, column]

    stream.write(records.tobytes())


def save_ply(gaussians: Sequence[Gaussian], filepath: Union[str, Path]) -> None:
    """
    Save gaussian splats to PLY file format.

    Args:
        gaussians: Gaussians to save
        filepath: Output PLY file path; a .gz suffix gzips the output

    Raises:
        MixedShOrderError: If the SH orders differ; no file is created
    """
    filepath = Path(filepath)
    cloud = GaussianCloud.from_gaussians(gaussians)
    compress = filepath.suffix == '.gz'

    # Choose file handle (compressed or uncompressed)
    if compress:
        f = gzip.open(filepath, 'wb')
    else:
        f = open(filepath, 'wb')

    try:
        write_ply_stream(cloud, f)
    finally:
        f.close()

    logger.info("Saved %d gaussians to %s%s", cloud.count, filepath,
                " (gzip compressed)" if compress else "")
