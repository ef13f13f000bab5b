import numpy as np
from scipy import linalg

import test_common
from phalanx import RankDeficiencyError, util
from phalanx.decomp import thin_qr
from phalanx.util import Assert


def _sign_normalize(Q, R):
  d = np.sign(np.diag(R))
  d[d == 0] = 1.0
  return Q * d, R * d[:, np.newaxis]


class TestThinQR(test_common.ClusterTest):
  def test_small_matrix(self):
    A = self.from_numpy(test_common.SMALL_A, num_partitions=2)
    Q, R = thin_qr(A, check_rank_deficiency=False)

    # Q keeps the partitioning of A and can be zipped with it.
    Assert.eq(Q.partitioning_tag, A.partitioning_tag)
    Assert.eq(Q.num_partitions, A.num_partitions)
    A.zip(Q)

    inQ = Q.collect()
    Assert.eq(inQ.shape, (5, 4))
    Assert.eq(R.shape, (4, 4))
    Assert.true(np.allclose(R, np.triu(R)))

    inA = test_common.SMALL_A
    Assert.lt(np.linalg.norm(inQ @ R - inA) / np.linalg.norm(inA), 1e-5)

    # Householder QR agrees up to column signs.
    qControl, rControl = _sign_normalize(*linalg.qr(inA, mode='economic'))
    Assert.lt(np.linalg.norm(rControl - R), 1e-5)
    Assert.lt(np.linalg.norm(qControl - inQ), 1e-5)

    # In-core Cholesky QR agrees much more tightly.
    L = linalg.cholesky(inA.T @ inA, lower=True)
    rControl2 = L.T
    qControl2 = linalg.solve_triangular(rControl2, inA.T, trans='T').T
    Assert.lt(np.linalg.norm(rControl2 - R), 1e-10)
    Assert.lt(np.linalg.norm(qControl2 - inQ), 1e-10)

    for col in range(inQ.shape[1]):
      Assert.lt(abs(inQ[:, col] @ inQ[:, col] - 1.0), 1e-10)
    for col1 in range(inQ.shape[1] - 1):
      for col2 in range(col1 + 1, inQ.shape[1]):
        Assert.lt(abs(inQ[:, col1] @ inQ[:, col2]), 1e-10)

  def test_random_tall(self):
    rng = np.random.default_rng(3)
    data = rng.standard_normal((400, 12))
    A = self.from_numpy(data, num_partitions=5)
    Q, R = thin_qr(A)

    inQ = Q.collect()
    Assert.lt(np.linalg.norm(inQ.T @ inQ - np.eye(12)), 1e-10)
    Assert.lt(test_common.relative_error(data, inQ @ R), 1e-10)

  def test_q_is_independent_of_partition_count(self):
    rng = np.random.default_rng(4)
    data = rng.standard_normal((60, 5))
    Q2, R2 = thin_qr(self.from_numpy(data, num_partitions=2))
    Q7, R7 = thin_qr(self.from_numpy(data, num_partitions=7))
    Assert.lt(np.linalg.norm(R2 - R7), 1e-10)
    Assert.lt(np.linalg.norm(Q2.collect() - Q7.collect()), 1e-10)

  def test_rank_deficient_raises(self):
    data = np.array(test_common.SMALL_A)
    data[:, 3] = data[:, 0] + data[:, 1]
    A = self.from_numpy(data, num_partitions=2)
    self.assertRaises(RankDeficiencyError, thin_qr, A, True, 1e-6)

  def test_rank_deficient_fallback(self):
    data = np.array(test_common.SMALL_A)
    data[:, 3] = data[:, 0] + data[:, 1]
    A = self.from_numpy(data, num_partitions=2)
    Q, R = thin_qr(A, check_rank_deficiency=False)

    inQ = Q.collect()
    Assert.true(np.all(np.isfinite(inQ)))
    Assert.true(np.all(np.isfinite(R)))
    Assert.lt(test_common.relative_error(data, inQ @ R), 1e-5)

  def test_zero_column_fallback(self):
    data = np.array(test_common.SMALL_A)
    data[:, 2] = 0.0
    A = self.from_numpy(data, num_partitions=3)
    self.assertRaises(RankDeficiencyError, thin_qr, A, True)

    Q, R = thin_qr(A, check_rank_deficiency=False)
    inQ = Q.collect()
    Assert.true(np.all(np.isfinite(inQ)))
    Assert.lt(test_common.relative_error(data, inQ @ R), 1e-5)

  def test_gram_pass_is_timed(self):
    A = self.from_numpy(test_common.SMALL_A, num_partitions=2)
    before = util.TIMER.count('thin_qr_gram')
    thin_qr(A, check_rank_deficiency=False)
    Assert.eq(util.TIMER.count('thin_qr_gram'), before + 1)
