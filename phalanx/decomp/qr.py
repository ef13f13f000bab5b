from .. import linalg, util
from ..config import FLAGS


def _default_tolerance():
  if FLAGS._parsed:
    return FLAGS.rank_tolerance
  return 1e-7


def thin_qr(A, check_rank_deficiency=True, rank_tolerance=None):
  '''Compute the thin QR factorization of a tall-skinny matrix.

  Factor the matrix A as QR, where Q is orthonormal and R is
  upper-triangular, in a single pass over A:

    1. every partition computes its Gram contribution Ai' Ai;
    2. the contributions are summed into G = A'A (one barrier);
    3. G = L L' is factored in core and R = L';
    4. every partition solves Qi = Ai inv(R) locally.

  Parameters
  ----------
  A : DistMatrix of shape (M, N).
  check_rank_deficiency : bool
      If True, raise `RankDeficiencyError` when G is not positive definite
      or when min diag(L) < rank_tolerance * max diag(L).  If False, such a
      G is factored after adding a small ridge to its diagonal.
  rank_tolerance : float, optional
      Relative threshold of the rank check (default: --rank_tolerance).

  Notes
  ----------
  A'A must fit in memory; N is expected to be far less than M.  Forming the
  Gram matrix squares the condition number, so Q loses orthogonality faster
  than a Householder QR would on ill-conditioned input; in exchange A is read
  once and no rows move between partitions.

  Returns
  -------
  Q : DistMatrix of shape (M, N), with the partitioning tag of A.
  R : numpy array of shape (N, N).
  '''
  if rank_tolerance is None:
    rank_tolerance = _default_tolerance()

  with util.TIMER.thin_qr_gram:
    G = A.gram()

  if check_rank_deficiency:
    L = linalg.cholesky(G, rank_tolerance)
  else:
    L, _ = linalg.regularized_cholesky(G, rank_tolerance)
  R = L.T

  Q = A.map_block(lambda block: linalg.solve_right_upper(block, R), ncol=A.ncol)
  return Q, R
