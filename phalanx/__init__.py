"""
Phalanx: stochastic decompositions of row-partitioned matrices.

Matrices are split into row blocks (`phalanx.array.DistMatrix`) processed
by the workers of a context (`phalanx.blob_ctx.BlobCtx`).  Every matrix
derived from another one by a row-preserving transform keeps its
partitioning tag, so intermediate results can be combined block by block
without moving rows.

The decompositions live in `phalanx.decomp`:

  * `thin_qr`: single-pass Cholesky QR of a tall-skinny matrix;
  * `ssvd`: stochastic (randomized) SVD with optional power iterations;
  * `spca`: stochastic PCA with implicit mean-centering.

Small in-core linear algebra goes through `phalanx.linalg`.
"""

import atexit
import sys

from . import config
from .array import DistMatrix, StorageLevel, from_numpy, from_partitions
from .blob_ctx import BlobCtx
from .config import FLAGS
from .decomp import PCA, DecompositionConfig, spca, ssvd, thin_qr
from .errors import (AggregationFailure, ConfigurationError, NumericDivergenceWarning,
                     PartitionMismatchError, PhalanxError, RankDeficiencyError)
from .random import RandomSource, SeededRandomSource
from . import blob_ctx


CTX = None


def initialize(argv=None):
  '''Parse flags and start the default context (once).'''
  global CTX

  if CTX is not None:
    return CTX

  if argv is None:
    argv = sys.argv[1:]

  config.parse(argv)
  CTX = BlobCtx(FLAGS.num_workers)
  blob_ctx.set(CTX)

  # Stop worker threads at exit.
  atexit.register(shutdown)
  return CTX


def shutdown():
  global CTX
  if CTX is None:
    return
  CTX.shutdown()
  blob_ctx.set(None)
  CTX = None
