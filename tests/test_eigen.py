"""
Tests for the generalized eigensolver
=====================================

Run: python -m pytest tests/test_eigen.py -v
"""

import pytest
import numpy as np
from scipy.sparse import diags, identity, csc_matrix

from Stripes.Eigen import smallest_eigenvector_positive_definite, EigenSolverError


def test_smallest_eigenvector_of_diagonal_matrix():
    A = diags([3., 1., 2.])
    B = identity(3)

    x = smallest_eigenvector_positive_definite(A, B)
    assert np.isclose(abs(x[1]), 1, atol=1e-8)
    assert np.allclose(x[[0, 2]], 0, atol=1e-8)


def test_generalized_problem_is_mass_normalised():
    """For A = diag(2, 2), B = diag(1, 4) the smallest eigenvalue 1/2 belongs to e_2."""
    A = diags([2., 2.])
    B = diags([1., 4.])

    x = smallest_eigenvector_positive_definite(A, B)
    assert np.isclose(abs(x[1]), 0.5, atol=1e-8)
    assert np.isclose(x @ (B @ x), 1)


def test_fixed_seed_is_deterministic():
    rng = np.random.default_rng(3)
    M = rng.standard_normal((6, 6))
    A = csc_matrix(M @ M.T + 6 * np.eye(6))
    B = identity(6, format='csc')

    x1 = smallest_eigenvector_positive_definite(A, B, seed=7)
    x2 = smallest_eigenvector_positive_definite(A, B, seed=7)
    assert np.array_equal(x1, x2)


def test_singular_matrix_raises():
    A = csc_matrix((3, 3))
    B = identity(3, format='csc')

    with pytest.raises(EigenSolverError):
        smallest_eigenvector_positive_definite(A, B)


def test_shape_mismatch_raises():
    with pytest.raises(ValueError, match='square matrices'):
        smallest_eigenvector_positive_definite(identity(3), identity(4))


def test_no_iterations_raises():
    with pytest.raises(ValueError, match='one iteration'):
        smallest_eigenvector_positive_definite(identity(2), identity(2), n_iterations=0)
