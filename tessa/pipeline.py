from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import IO, List

from .config import SAFE_SHAPE_BOUND, TessaConfig
from .domain import hole_seeds, set_domain_from_rings
from .output import LabeledEdge, chain_edges, domain_edges, save_vtu, write_output
from .provenance import IngestionContext
from .repair import repair_labels
from .triangulation import TransformOutcome, TransformResult
from .utils import tolerance_for
from .wkt import TessaInput

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    context: IngestionContext
    edges: List[LabeledEdge]
    transforms: List[TransformResult] = field(default_factory=list)


def _report(result: TransformResult, cdt) -> None:
    if result.outcome is TransformOutcome.REJECTED:
        logger.error(f"{result.operation} failed: {result.message}")
    elif result.outcome is TransformOutcome.PARTIAL:
        logger.warning(f"{result.operation} partially applied: {result.message}")
    logger.info(f"Number of vertices is now: {cdt.number_of_vertices()}")


def build(data: TessaInput, config: TessaConfig) -> PipelineResult:
    """Ingest `data`, apply the requested structural operations and label the edges."""
    ctx = IngestionContext()
    ctx.ingest(data)
    cdt = ctx.triangulation
    tol = tolerance_for([vh.point for vh in cdt.finite_vertices()], config.tolerance)

    seeds = hole_seeds(ctx.hole_rings)
    transforms: List[TransformResult] = []

    def repair() -> None:
        logger.info("Repairing labels")
        # before id backfill, so every new vertex still has the sentinel id
        added = ctx.table.merge(repair_labels(cdt, ctx.table, tol))
        logger.info(f"Done repairing edges ({added} recovered)")

    if config.cdt:
        logger.info("Making conforming Delaunay triangulation...")
        result = cdt.make_conforming_delaunay()
        _report(result, cdt)
        if result.applied:
            set_domain_from_rings(cdt, ctx.polygon_rings)
            repair()
        transforms.append(result)

    if config.mesh:
        logger.info(f"Making mesh with parameters B={config.shape_bound} and S={config.size_bound} ...")
        if config.shape_bound > SAFE_SHAPE_BOUND:
            logger.warning(f"B={config.shape_bound} is above {SAFE_SHAPE_BOUND}; refinement may not terminate")
        result = cdt.refine_mesh(seeds, config.shape_bound, config.size_bound)
        _report(result, cdt)
        # the refiner marks the domain itself
        if result.applied:
            repair()
        transforms.append(result)

    if config.gabriel:
        logger.info("Making conforming Gabriel graph...")
        result = cdt.make_conforming_gabriel()
        _report(result, cdt)
        if result.applied:
            set_domain_from_rings(cdt, ctx.polygon_rings)
            repair()
        transforms.append(result)

    if config.any_transform:
        ctx.next_id = cdt.assign_missing_ids(ctx.next_id)
        edges = domain_edges(cdt, ctx.table)
    else:
        logger.warning("Did not do anything to the input.")
        edges = chain_edges(ctx.rings, ctx.table)

    return PipelineResult(ctx, edges, transforms)


def run(data: TessaInput, config: TessaConfig, out: IO[str]) -> PipelineResult:
    result = build(data, config)
    cdt = result.context.triangulation
    vertices = cdt.finite_vertices()
    write_output(out, vertices, result.edges, config.free_for)
    if config.vtu_path:
        faces = cdt.faces() if config.any_transform else []
        save_vtu(config.vtu_path, vertices, faces, result.edges)
    logger.info("Done.")
    return result
