"""
Graph Write Throughput Benchmark.

Measures how many nodes per second a transactional graph store commits under
different batch sizes, indexing strategies and worker thread counts.
"""

__version__ = "0.1.0"
