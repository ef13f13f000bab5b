import logging
import warnings

from .. import linalg, util
from ..errors import NumericDivergenceWarning
from .options import make_config
from .qr import thin_qr

# Relative drop in captured energy reported as divergence.
DIVERGENCE_TOLERANCE = 1e-8


def check_energy(energy, prev_energy, iteration):
  '''Warn when a power iteration captured less of A than the previous basis.

  ``energy`` is ||A'Q||_F^2 for the current orthonormal basis Q; it cannot
  decrease in exact arithmetic.
  '''
  if prev_energy is not None and energy < prev_energy * (1.0 - DIVERGENCE_TOLERANCE):
    msg = ('Power iteration %d reduced the captured energy (%g -> %g); '
           'the basis is losing precision' % (iteration, prev_energy, energy))
    util.log_warn(msg)
    warnings.warn(msg, NumericDivergenceWarning, stacklevel=3)
  return energy


def reorthogonalize(Bt, G, rank_tolerance):
  '''
  Orthonormalize the basis behind ``Bt = A'Q`` in core.

  ``G`` is Q'Q from the same pass.  Returns ``(A'Q2, T)`` where ``Q2 = Q T``
  has orthonormal columns even when those of Q drifted on ill-conditioned
  input.  Q2 itself is never formed.
  '''
  T = linalg.gram_orthonormalizer(G, rank_tolerance)
  return Bt @ T, T


def _project(A, Q):
  '''A'Q and Q'Q, from a single pass.'''
  return A.zip(Q).all_reduce(lambda a, q: (linalg.as_dense(a.T @ q), q.T @ q))


def ssvd(A, k=None, p=None, q=None, seed=None, config=None, random_source=None):
  """
  Stochastic SVD.

  Parameters
  ----------
  A : DistMatrix
      Array to compute the SVD on, of shape (M, N)
  k : int
      Number of singular values and vectors to compute.
  p : int, optional
      Oversampling (default 15); k + p projection columns are used, with p
      reduced so that k + p <= min(M, N).
  q : int, optional
      Number of power iterations (default 0).
  seed : int, optional
      Seed of the random projection.  Identical seeds and partitionings give
      identical results.
  config : DecompositionConfig, optional
      Base parameters; explicit keyword arguments override it.
  random_source : RandomSource, optional
      Source of the projection matrix; built from the seed if None.

  The projection, the power iterations and the final B = Q'A are computed
  with block-local multiplies and one reduction per pass; only the
  (k + p) x N matrix B is decomposed in core.  The pass that computes B also
  returns Q'Q, which re-orthonormalizes the basis without another barrier.
  A lazy A is evaluated once and cached only until ssvd returns.

  Returns
  --------
  U : DistMatrix of shape (M, k), aligned with A
  V : numpy array of shape (N, k)
  s : numpy array of shape (k,)
  """
  cfg = make_config(config, k=k, p=p, q=q, seed=seed)
  m, n = A.shape
  l = cfg.projection_width(m, n)
  if random_source is None:
    random_source = cfg.random_source()

  util.log_info('ssvd: A=%s k=%d l=%d q=%d', A.shape, cfg.k, l, cfg.q)
  cached = A.persist()
  try:
    U, V, s = _ssvd(cached, cfg, l, random_source)
  finally:
    # drop only the cache made here; U reads Q, never A
    if cached is not A:
      cached.unpersist()
  return U, V, s


def _ssvd(A, cfg, l, random_source):
  n = A.ncol
  omega = random_source.omega(n, l)
  with util.timer_ctx('ssvd projection', level=logging.DEBUG):
    Y = A.times(omega).persist()
    Q, _ = thin_qr(Y, cfg.check_rank_deficiency, cfg.rank_tolerance)
    Q = Q.persist()
    Bt, T = reorthogonalize(*_project(A, Q), cfg.rank_tolerance)
    Y.unpersist()

  energy = check_energy(linalg.frobenius_norm(Bt) ** 2, None, 0)
  for i in range(cfg.q):
    with util.timer_ctx('ssvd power iteration %d' % (i + 1), level=logging.DEBUG):
      Y = A.times(Bt).persist()
      Q.unpersist()
      Q, _ = thin_qr(Y, cfg.check_rank_deficiency, cfg.rank_tolerance)
      Q = Q.persist()
      Bt, T = reorthogonalize(*_project(A, Q), cfg.rank_tolerance)
      Y.unpersist()
    energy = check_energy(linalg.frobenius_norm(Bt) ** 2, energy, i + 1)

  U_hat, s, Vt = linalg.svd(Bt.T)

  U = Q.times(T @ U_hat[:, :cfg.k])
  V = Vt[:cfg.k, :].T
  return U, V, s[:cfg.k]
