import numpy as np
from tqdm import tqdm
from Stripes.Auxiliary import as_complex_field, wrap_angle


def compute_face_index(mesh, direction_field, n_sym=2):
    '''
    Compute the singularity index of an n_sym-direction field around each face.
        Input:
            mesh: Triangle_mesh
            direction_field: (N,) complex array in power representation
            n_sym: symmetry of the field, 2 for line fields
        Output:
            indices: (M,) int array, nonzero only on singular faces
    '''
    direction_field = as_complex_field(direction_field, len(mesh.V))

    transport = mesh.require('transport_vectors_along_halfedge')
    curvatures = mesh.require('face_gaussian_curvatures')

    indices = np.zeros(len(mesh.F), dtype=int)

    for f in tqdm(range(len(mesh.F)),
                  desc='Computing field indices',
                  leave=False,
                  disable=not mesh.verbose):
        total_rotation = 0.

        for h in mesh.face_halfedges(f):
            # Rotation of the field along the halfedge, relative to the transport
            theta_0 = np.angle(transport[h] ** n_sym * direction_field[mesh.tail(h)])
            theta_1 = np.angle(direction_field[mesh.tip(h)])

            total_rotation += wrap_angle(theta_1 - theta_0)

        indices[f] = int(np.round((total_rotation + n_sym * curvatures[f]) / (2 * np.pi)))

    return indices
