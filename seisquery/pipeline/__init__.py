"""Chunked execution of horizon requests."""

from seisquery.pipeline.chunks import ChunkPlan, RowChunk, plan_row_chunks, run_chunks

__all__ = ["ChunkPlan", "RowChunk", "plan_row_chunks", "run_chunks"]
