"""
Pytest configuration and shared fixtures for watfNURBS tests.

The mesh fixtures are small NURBS meshes in the text format:

- line_two_patch: 1D, two quadratic patches sharing vertex 1
- square_single_patch: 2D, one linear patch with 4 x 4 elements
- square_two_patch: 2D, two linear patches sharing the edge 1-4

      3 ---- 4 ---- 5
      |  p0  |  p1  |
      0 ---- 1 ---- 2

- cube_single_patch: 3D, one quadratic patch with 2 x 2 x 2 elements
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add the parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))


LINE_TWO_PATCH = """MFEM NURBS mesh v1.0

dimension
1

elements
2
1 1 0 1
1 1 1 2

boundary
2
1 0 0
2 0 2

vertices
3

knotvectors
2
2 4 0 0 0 0.5 1 1 1
2 4 0 0 0 0.5 1 1 1

weights
1
1
1
1
1
1
1
"""

SQUARE_SINGLE_PATCH = """MFEM NURBS mesh v1.0

# unit square, 4 x 4 linear elements
dimension
2

elements
1
1 3 0 1 2 3

boundary
4
1 1 0 1
2 1 1 2
3 1 3 2
4 1 0 3

edges
4
0 0 1
1 1 2
0 3 2
1 0 3

vertices
4

knotvectors
2
1 5 0 0 0.25 0.5 0.75 1 1
1 5 0 0 0.25 0.5 0.75 1 1

unitweights
"""

SQUARE_TWO_PATCH = """MFEM NURBS mesh v1.0

dimension
2

elements
2
1 3 0 1 4 3
2 3 1 2 5 4

boundary
6
1 1 0 1
1 1 1 2
2 1 2 5
3 1 4 5
3 1 3 4
4 1 0 3

edges
7
0 0 1
1 1 4
0 3 4
1 0 3
2 1 2
1 2 5
2 4 5

vertices
6

knotvectors
3
1 3 0 0 0.5 1 1
1 4 0 0 1 2 3 3
1 3 0 0 0.5 1 1

unitweights
"""

CUBE_SINGLE_PATCH = """MFEM NURBS mesh v1.0

dimension
3

elements
1
1 5 0 1 2 3 4 5 6 7

boundary
6
1 3 3 2 1 0
2 3 0 1 5 4
3 3 1 2 6 5
4 3 2 3 7 6
5 3 3 0 4 7
6 3 4 5 6 7

edges
12
0 0 1
1 1 2
0 3 2
1 0 3
0 4 5
1 5 6
0 7 6
1 4 7
2 0 4
2 1 5
2 2 6
2 3 7

vertices
8

knotvectors
3
2 4 0 0 0 0.5 1 1 1
2 4 0 0 0 0.5 1 1 1
2 4 0 0 0 0.5 1 1 1

unitweights
"""


@pytest.fixture
def tolerance():
    """Default tolerance for floating point comparisons."""
    return 1e-12


@pytest.fixture
def loose_tolerance():
    """Looser tolerance for iterative searches."""
    return 1e-8


@pytest.fixture
def line_two_patch():
    return LINE_TWO_PATCH


@pytest.fixture
def square_single_patch():
    return SQUARE_SINGLE_PATCH


@pytest.fixture
def square_two_patch():
    return SQUARE_TWO_PATCH


@pytest.fixture
def cube_single_patch():
    return CUBE_SINGLE_PATCH
