"""
Tests for the singularity index of line fields
==============================================

Run: python -m pytest tests/test_direction_field.py -v
"""

import pytest
import numpy as np

from Stripes.Auxiliary import build_grid, build_cylinder, as_complex_field, wrap_angle
from Stripes.DirectionField import compute_face_index
from Stripes.Mesh import Triangle_mesh


def grid_corner_faces(mesh, n_x, n_y):
    """Faces touching the four corners of a grid, where the rescaled angles are not flat."""
    corners = [0, n_x, n_y * (n_x + 1), (n_y + 1) * (n_x + 1) - 1]
    return np.any(np.isin(mesh.F, corners), axis=1)


def contains_point(mesh, f, p):
    a, b, c = mesh.V[mesh.F[f], :2]
    T = np.stack([b - a, c - a], axis=1)
    s, t = np.linalg.solve(T, p - a)
    return s >= 0 and t >= 0 and s + t <= 1


# =============================================================================
# Regular fields
# =============================================================================

def test_constant_field_on_cylinder_has_no_singularity():
    V, F = build_cylinder(16, 8, radius=0.5, height=1)
    mesh = Triangle_mesh(V, F)
    field = mesh.tangent_vectors_to_field(np.array([0, 0, 1.]))

    assert np.all(compute_face_index(mesh, field, 2) == 0)


def test_constant_field_on_grid_has_no_singularity():
    V, F = build_grid(6, 6)
    mesh = Triangle_mesh(V, F)
    field = mesh.tangent_vectors_to_field(np.array([1., 1., 0]))

    indices = compute_face_index(mesh, field, 2)
    assert np.all(indices[~grid_corner_faces(mesh, 6, 6)] == 0)


# =============================================================================
# Singular fields
# =============================================================================

def test_half_index_line_field_has_one_singular_face():
    """A line field turning by pi around a point has index 1 in the power representation."""
    V, F = build_grid(10, 10, width=2, height=2, origin=(-1, -1))
    mesh = Triangle_mesh(V, F)

    center = np.array([0.03, 0.02])
    phi = np.arctan2(V[:, 1] - center[1], V[:, 0] - center[0])
    vectors = np.stack([np.cos(phi / 2), np.sin(phi / 2), np.zeros(len(V))], axis=1)
    field = mesh.tangent_vectors_to_field(vectors)

    indices = compute_face_index(mesh, field, 2)
    indices[grid_corner_faces(mesh, 10, 10)] = 0

    singular = np.nonzero(indices)[0]
    assert len(singular) == 1
    assert abs(indices[singular[0]]) == 1
    assert contains_point(mesh, singular[0], center)


def test_index_accepts_two_column_fields():
    V, F = build_grid(4, 4)
    mesh = Triangle_mesh(V, F)
    field = np.ones(len(V), dtype=complex)

    as_pairs = np.stack([field.real, field.imag], axis=1)
    assert np.array_equal(compute_face_index(mesh, field), compute_face_index(mesh, as_pairs))


# =============================================================================
# Guards and helpers
# =============================================================================

def test_wrong_field_shape_raises():
    V, F = build_grid(2, 2)
    mesh = Triangle_mesh(V, F)

    with pytest.raises(ValueError, match='field values'):
        compute_face_index(mesh, np.ones(len(V) + 1))
    with pytest.raises(ValueError, match='Expected a field'):
        as_complex_field(np.ones((len(V), 3)), len(V))


def test_wrap_angle_range():
    theta = np.array([-np.pi, np.pi, 3 * np.pi / 2, -3 * np.pi / 2, 0.5])
    wrapped = wrap_angle(theta)

    assert np.all(wrapped >= -np.pi) and np.all(wrapped < np.pi)
    assert np.allclose(np.exp(1j * wrapped), np.exp(1j * theta))
