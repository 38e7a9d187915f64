import numpy as np
import polyscope as ps
from Stripes.Auxiliary import *
from Stripes.Mesh import Triangle_mesh
from Stripes.StripePattern import compute_stripe_pattern
from Stripes.Isolines import extract_isolines_from_stripe_pattern, isolines_to_polylines
import os


if __name__ == '__main__':

    V, F = build_cylinder(48, 64, radius=0.5, height=2)
    # V, F = build_grid(40, 40)
    # V, F = load_off_file(os.path.join('..', 'data', 'spherers.off'))
    # V, F = load_off_file(os.path.join('..', 'data_patho', 'rocker-arm1250.off'))

    mesh = Triangle_mesh(V, F, verbose=True)

    # Stripes along the axis of the cylinder
    direction_field = mesh.tangent_vectors_to_field(np.array([0, 0, 1]))
    # direction_field = mesh.require('vertex_principal_curvature_directions')

    frequencies = 4 * np.ones(len(V))

    texture_coordinates, stripe_indices, field_indices = compute_stripe_pattern(mesh, frequencies, direction_field)

    result = extract_isolines_from_stripe_pattern(mesh, texture_coordinates, stripe_indices, field_indices)
    if not result.ok:
        print('Tracing stopped at face', result.branching_face)
    points, edges = isolines_to_polylines(mesh, result.isolines)

    ps.init()
    ps_mesh = ps.register_surface_mesh("Input Mesh", V, F, color=(0.95, 0.98, 1))

    # Stripe values per corner, in periods
    corner_coordinates = np.stack([texture_coordinates.flatten() / (2 * np.pi), np.zeros(3 * len(F))], axis=1)
    ps_mesh.add_parameterization_quantity('Stripes', corner_coordinates, defined_on='corners', enabled=True)

    ps_mesh.add_scalar_quantity('Stripe indices', stripe_indices, defined_on='faces', enabled=False)
    ps_mesh.add_scalar_quantity('Field indices', field_indices, defined_on='faces', enabled=False)
    ps_mesh.add_vector_quantity('Direction field', mesh.field_to_tangent_vectors(direction_field),
                                defined_on='vertices', enabled=False, length=0.01)

    if len(edges) > 0:
        ps.register_curve_network("Isolines", points, edges, radius=0.002, color=(0.1, 0.1, 0.1))

    ps.show()
