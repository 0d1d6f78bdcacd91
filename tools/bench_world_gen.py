"""Benchmark terrain generation and chunk meshing."""
from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import List

from engine.config import WorldSettings
from engine.config import load as load_engine_config
from render.quad_geom import QuadGeomBuilder
from world.pipeline import TerrainPipeline


def _parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Benchmark chunk generation and meshing")
    parser.add_argument("--config", help="Engine config json (defaults to config/engine.json)")
    parser.add_argument("--radius", type=int, help="Spawn radius in chunks around the origin")
    parser.add_argument("--seed", type=lambda v: int(v, 0), help="World seed, e.g. 0xDEADBEEF")
    parser.add_argument("--layers", type=int, help="Noise octave count")
    parser.add_argument("--workers", type=int, help="Mesh worker threads")
    parser.add_argument("--geom", action="store_true", help="Also build Panda3D geometry for every chunk")
    parser.add_argument("--timeout", type=float, default=300.0)
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv: List[str]) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.config:
        load_engine_config(args.config)

    overrides = {}
    if args.radius is not None:
        overrides["spawn_radius"] = args.radius
    if args.seed is not None:
        overrides["seed"] = args.seed
    if args.layers is not None:
        overrides["noise_layers"] = args.layers
    if args.workers is not None:
        overrides["workers"] = args.workers
    settings = WorldSettings.from_config(**overrides)

    with TerrainPipeline(settings) as pipeline:
        t_start = time.perf_counter()
        entities = pipeline.spawn_region(settings.spawn_radius)
        ticks = pipeline.run_until_idle(timeout=args.timeout)
        pipeline_time = time.perf_counter() - t_start

        full = sum(1 for e in entities if pipeline.blocks.full_neighborhood(e) is not None)

        total_vertices = 0
        geom_time = 0.0
        if args.geom:
            builder = QuadGeomBuilder()
            t_geom = time.perf_counter()
            for position in pipeline.index.positions():
                quads = pipeline.quads_at(position)
                if quads is None or not len(quads):
                    continue
                geom_node = builder.build_geomnode(quads, position, settings.chunk_size).node()
                for gi in range(geom_node.getNumGeoms()):
                    total_vertices += geom_node.getGeom(gi).getVertexData().getNumRows()
            geom_time = time.perf_counter() - t_geom

        print("Seed:", hex(settings.seed))
        print("Chunks:", len(entities))
        print("Full neighborhoods:", full)
        print("Ticks:", ticks)
        print(f"Pipeline time: {pipeline_time:.3f} s")
        print("Quads:", pipeline.quad_count.value)
        if args.geom:
            print(f"Geometry time: {geom_time:.3f} s")
            print("Vertices:", total_vertices)
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
