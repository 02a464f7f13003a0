"""The netdecode CLI

Decodes network outputs that were saved to a NumPy .npz archive and prints the
results. Useful for inspecting what the decoders make of a captured frame
without running the capture and inference pipeline.
"""

import logging
from pathlib import Path

import click
import numpy as np
from rich.console import Console
from rich.table import Table

from netdecode.config import DecoderConfig, load_config
from netdecode.core import DecodeError
from netdecode.detection import YoloMetadata, detect_objects, load_metadata
from netdecode.pose import CONNECTED_PART_NAMES, PART_NAMES, POSE_CHAIN, decode_multiple_poses
from netdecode.version import version_str

POSE_ARRAYS = ("heatmap", "offsets", "displacements_fwd", "displacements_bwd")
DETECTION_ARRAY = "output"


def _load_arrays(path: Path, names: tuple[str, ...]) -> dict[str, np.ndarray]:
    try:
        loaded = np.load(path)
    except (OSError, ValueError) as e:
        raise click.ClickException(f"unable to read {path}: {e}") from e

    if not isinstance(loaded, np.lib.npyio.NpzFile):
        raise click.ClickException(
            f"{path} is not an .npz archive, expected array(s): {', '.join(names)}"
        )

    with loaded as archive:
        missing = [name for name in names if name not in archive.files]
        if missing:
            raise click.ClickException(
                f"{path} is missing array(s): {', '.join(missing)} "
                f"(found: {', '.join(archive.files) or 'none'})"
            )
        return {name: archive[name] for name in names}


def _base_config(config_file: Path | None) -> DecoderConfig:
    if config_file is None:
        return DecoderConfig()
    try:
        return load_config(config_file)
    except ValueError as e:
        raise click.ClickException(str(e)) from e


@click.group(context_settings={"max_content_width": 120})
@click.version_option(version_str(), prog_name="netdecode")
@click.option("--verbose", is_flag=True, help="Enable verbose output.")
@click.pass_context
def cli(ctx, verbose):
    """Decode pose and object detection network outputs."""
    ctx.ensure_object(dict)
    ctx.obj["VERBOSE"] = verbose
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@cli.command(name="pose")
@click.argument("tensors", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON decoder configuration file.",
)
@click.option("--output-stride", type=click.Choice(["8", "16", "32"]), help="Network output stride.")
@click.option("--max-poses", type=click.IntRange(min=0), help="Maximum number of poses.")
@click.option("--score-threshold", type=click.FloatRange(0, 1), help="Minimum root part score.")
@click.option("--nms-radius", type=click.FloatRange(min=0), help="Part NMS radius in pixels.")
@click.option(
    "--min-confidence",
    default=0.1,
    show_default=True,
    type=click.FloatRange(0, 1),
    help="Only list keypoints with at least this score.",
)
@click.pass_context
def pose(
    ctx,
    tensors: Path,
    config_file: Path | None,
    output_stride: str | None,
    max_poses: int | None,
    score_threshold: float | None,
    nms_radius: float | None,
    min_confidence: float,
):
    """Decode poses from TENSORS, an .npz archive with heatmap, offsets,
    displacements_fwd and displacements_bwd arrays."""
    config = _base_config(config_file).with_overrides(
        "pose",
        output_stride=int(output_stride) if output_stride else None,
        max_pose_detections=max_poses,
        score_threshold=score_threshold,
        nms_radius=nms_radius,
    )
    pose_config = config.pose

    if ctx.obj["VERBOSE"]:
        click.echo("Decoding poses with the following parameters:")
        click.echo(f"\tOutput stride: {pose_config.output_stride}")
        click.echo(f"\tMax poses: {pose_config.max_pose_detections}")
        click.echo(f"\tScore threshold: {pose_config.score_threshold}")
        click.echo(f"\tNMS radius: {pose_config.nms_radius}")

    arrays = _load_arrays(tensors, POSE_ARRAYS)
    try:
        poses = decode_multiple_poses(
            *(arrays[name] for name in POSE_ARRAYS),
            output_stride=pose_config.output_stride,
            max_pose_detections=pose_config.max_pose_detections,
            score_threshold=pose_config.score_threshold,
            nms_radius=pose_config.nms_radius,
        )
    except DecodeError as e:
        raise click.ClickException(str(e)) from e

    table = Table(title=f"{len(poses)} pose(s)")
    table.add_column("pose", justify="right")
    table.add_column("score", justify="right")
    table.add_column("part")
    table.add_column("keypoint score", justify="right")
    table.add_column("x", justify="right")
    table.add_column("y", justify="right")

    for i, p in enumerate(poses):
        for keypoint in p.keypoints:
            if keypoint.score < min_confidence:
                continue
            table.add_row(
                str(i),
                f"{p.score:.3f}",
                keypoint.part,
                f"{keypoint.score:.3f}",
                f"{keypoint.position.x:.1f}",
                f"{keypoint.position.y:.1f}",
            )

    Console().print(table)


@cli.command(name="detect")
@click.argument("tensors", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--meta",
    "meta_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Model .meta JSON file. Defaults to yolov2-tiny without labels.",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON decoder configuration file.",
)
@click.option("--threshold", type=click.FloatRange(0, 1), help="Minimum class probability.")
@click.option(
    "--overlap-threshold", type=click.FloatRange(min=0), help="Suppression overlap threshold."
)
@click.option(
    "--symmetric-scaling/--legacy-scaling",
    default=None,
    help="Scale box top edges by the input height instead of the input width.",
)
@click.pass_context
def detect(
    ctx,
    tensors: Path,
    meta_file: Path | None,
    config_file: Path | None,
    threshold: float | None,
    overlap_threshold: float | None,
    symmetric_scaling: bool | None,
):
    """Decode objects from TENSORS, an .npz archive with an output array."""
    config = _base_config(config_file).with_overrides(
        "detection",
        threshold=threshold,
        overlap_threshold=overlap_threshold,
        symmetric_scaling=symmetric_scaling,
    )
    detection_config = config.detection

    try:
        metadata = load_metadata(meta_file) if meta_file else YoloMetadata.default()
    except DecodeError as e:
        raise click.ClickException(str(e)) from e

    if ctx.obj["VERBOSE"]:
        click.echo("Detecting objects with the following parameters:")
        click.echo(f"\tInput size: {metadata.input_width}x{metadata.input_height}")
        click.echo(f"\tGrid: {metadata.grid_width}x{metadata.grid_height}")
        click.echo(f"\tBoxes: {metadata.num_boxes}, classes: {metadata.num_classes}")
        click.echo(f"\tThreshold: {detection_config.threshold}")
        click.echo(f"\tOverlap threshold: {detection_config.overlap_threshold}")

    arrays = _load_arrays(tensors, (DETECTION_ARRAY,))
    try:
        objects = detect_objects(
            arrays[DETECTION_ARRAY],
            metadata,
            threshold=detection_config.threshold,
            overlap_threshold=detection_config.overlap_threshold,
            symmetric_scaling=detection_config.symmetric_scaling,
        )
    except DecodeError as e:
        raise click.ClickException(str(e)) from e

    table = Table(title=f"Found {len(objects)} objects")
    for column in ("label", "conf", "left", "top", "right", "bottom"):
        table.add_column(column, justify="left" if column == "label" else "right")

    for obj in objects:
        table.add_row(
            obj.class_label,
            f"{obj.class_conf * 100:.0f}%",
            f"{obj.box_left:.0f}",
            f"{obj.box_top:.0f}",
            f"{obj.box_right:.0f}",
            f"{obj.box_bottom:.0f}",
        )

    Console().print(table)


@cli.command(name="skeleton")
def skeleton():
    """Print the skeleton parts, pose chain and connected parts."""
    console = Console()

    parts = Table(title="parts")
    parts.add_column("index", justify="right")
    parts.add_column("name")
    for i, name in enumerate(PART_NAMES):
        parts.add_row(str(i), name)
    console.print(parts)

    chain = Table(title="pose chain")
    chain.add_column("edge", justify="right")
    chain.add_column("parent")
    chain.add_column("child")
    for i, (parent, child) in enumerate(POSE_CHAIN):
        chain.add_row(str(i), parent, child)
    console.print(chain)

    connected = Table(title="connected parts")
    connected.add_column("a")
    connected.add_column("b")
    for a, b in CONNECTED_PART_NAMES:
        connected.add_row(a, b)
    console.print(connected)


def main():
    """Entry point for the netdecode command."""
    cli(obj={})


if __name__ == "__main__":
    main()
