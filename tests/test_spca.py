import numpy as np
import scipy.sparse as sp

import test_common
from phalanx.decomp import spca, ssvd
from phalanx.util import Assert


def _centered(data):
  return data - data.mean(axis=0)


class TestSPCA(test_common.ClusterTest):
  def test_spca(self):
    rng = np.random.default_rng(1234)

    # Number of points
    m = 500
    # Length of actual spectrum
    spectrum_len = 40
    spectrum = np.maximum(300.0 * np.exp(-np.arange(spectrum_len)), 1e-3)

    scores = np.where(rng.random((m, spectrum_len)) < 0.2, 0.0,
                      rng.random((m, spectrum_len)) + 5.0)
    u, _ = np.linalg.qr(scores)

    # PCA rotation matrix, also orthonormal.
    sym = rng.uniform(-1.0, 1.0, (spectrum_len, spectrum_len))
    sym = np.triu(sym) + np.triu(sym, 1).T
    tr, _ = np.linalg.qr(sym - 10.0)

    data = (u * spectrum) @ tr.T
    A = self.from_numpy(data, num_partitions=2)

    # p is large enough that the result carries no stochastic error, so only
    # the centering is being checked.
    k = 10
    U, V, s = spca(A, k=k, p=spectrum_len, q=1, seed=1234)
    pca = U.collect() * s

    # brute-force PCA of the explicitly centered data
    uc, sc, _ = np.linalg.svd(_centered(data), full_matrices=False)
    control = (uc * sc)[:, :k]

    Assert.eq(U.partitioning_tag, A.partitioning_tag)
    Assert.lt(np.max(np.abs(s - sc[:k])), 1e-6 * sc[0])
    block_norm = np.linalg.norm(control[:10, :10])
    Assert.lt(abs(np.linalg.norm(pca[:10, :10]) - block_norm) / block_norm, 1e-6)
    # Scores agree up to the sign of each component.
    Assert.lt(test_common.relative_error(np.abs(control), np.abs(pca)), 1e-6)

  def test_matches_ssvd_of_centered_data(self):
    data = test_common.low_rank_matrix(100, 15, np.linspace(5.0, 1.0, 15), seed=6)
    data += np.arange(15) * 3.0
    A = self.from_numpy(data, num_partitions=3)
    C = self.from_numpy(_centered(data), num_partitions=3)

    U1, V1, s1 = spca(A, k=5, p=5, q=1, seed=3)
    U2, V2, s2 = ssvd(C, k=5, p=5, q=1, seed=3)
    Assert.lt(np.max(np.abs(s1 - s2) / s2), 1e-8)
    Assert.lt(np.linalg.norm(np.abs(V1) - np.abs(V2)), 1e-6)

  def test_sparse_input(self):
    data = sp.random(200, 30, density=0.1, format='csr', random_state=12)
    A = self.from_numpy(data, num_partitions=4)
    for t in A.tiles():
      Assert.true(t.sparse)

    U, V, s = spca(A, k=5, p=25, seed=2)
    dense = data.toarray()
    s_exact = np.linalg.svd(_centered(dense), compute_uv=False)[:5]
    Assert.lt(np.max(np.abs(s - s_exact) / s_exact), 1e-8)

    inU = U.collect()
    Assert.lt(np.linalg.norm(inU.T @ inU - np.eye(5)), 1e-8)

    # the same call on dense blocks gives the same decomposition
    U2, V2, s2 = spca(self.from_numpy(dense, num_partitions=4), k=5, p=25, seed=2)
    Assert.lt(np.max(np.abs(s - s2) / s2), 1e-8)

  def test_scores_are_centered(self):
    rng = np.random.default_rng(21)
    data = rng.standard_normal((120, 8)) + 10.0
    A = self.from_numpy(data, num_partitions=3)
    U, V, s = spca(A, k=3, p=5, seed=21)

    # every principal component score has zero mean
    Assert.lt(np.max(np.abs(U.collect().sum(axis=0))), 1e-8)
    Assert.lt(np.linalg.norm(V.T @ V - np.eye(3)), 1e-8)

  def test_return_mean(self):
    data = np.random.default_rng(3).standard_normal((40, 6)) + np.arange(6)
    A = self.from_numpy(data, num_partitions=2)
    U, V, s, xi = spca(A, k=2, p=2, seed=3, return_mean=True)
    Assert.all_close(xi, data.mean(axis=0))
    Assert.eq(len(spca(A, k=2, p=2, seed=3)), 3)

  def test_input_cache_released(self):
    calls = []

    def shift(block):
      calls.append(block.shape)
      return block + 1.0

    base = self.from_numpy(test_common.SMALL_A, num_partitions=2)
    A = base.map_block(shift)
    with test_common.recording_persist() as handles:
      U, V, s = spca(A, k=2, p=1, q=1, seed=1)

    Assert.eq(len(calls), 2)
    cached = test_common.handles_of(handles, A)
    Assert.eq(len(cached), 1)
    Assert.true(cached[0]._tiles is None)
    Assert.eq(U.collect().shape, (5, 2))
    # U is read from the basis, not from A
    Assert.eq(len(calls), 2)
