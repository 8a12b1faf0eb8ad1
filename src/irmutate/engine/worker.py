"""
Mutant generation, sequential or in a worker process.
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

OUTPUT_PATTERN = "mutant_%06d.ll"


def generate_mutants(
    mutator,
    source: bytes,
    output_dir: Path,
    indices,
    base_seed: int,
    max_size: int,
    verify: bool = True,
) -> int:
    """
    Write one mutant of `source` per index.

    Mutant `i` uses seed `base_seed + i`, so the files produced do not
    depend on how indices are split between workers.

    Returns:
        Number of mutants written
    """
    from irmutate.codec import parse_and_verify
    from irmutate.core.context import Context
    from irmutate.harness import mutate_bytes

    written = 0
    for index in indices:
        seed = base_seed + index
        mutant = mutate_bytes(source, max_size, seed, mutator, Context())
        if mutant is None:
            logger.debug(f"Mutant {index} (seed {seed}) exceeds {max_size} bytes, skipped")
            continue
        if verify and parse_and_verify(mutant, len(mutant), Context()) is None:
            logger.warning(f"Mutant {index} (seed {seed}) failed verification, skipped")
            continue
        (output_dir / (OUTPUT_PATTERN % index)).write_bytes(mutant)
        written += 1
    return written


def mutate_worker(args):
    """
    Worker function for parallel generation.

    Args is a tuple of all necessary parameters since multiprocessing
    requires a single argument. The mutator arrives dill-serialized.
    """
    (
        worker_id,
        mutator_payload,
        source,
        output_path,
        indices,
        base_seed,
        max_size,
        verify,
    ) = args

    # Import here to avoid issues with multiprocessing
    import dill

    mutator = dill.loads(mutator_payload)
    logger.debug(f"Worker {worker_id}: {len(indices)} mutants")
    return generate_mutants(mutator, source, Path(output_path), indices, base_seed, max_size, verify)
