from .distmatrix import DistMatrix, StorageLevel, ZippedMatrix, from_numpy, from_partitions
from .extent import PartitioningTag, compute_splits
