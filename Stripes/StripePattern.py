'''
Stripe patterns on surfaces [Knoppel et al. 2015].

From vertex frequencies and a line field (2-RoSy, power representation)
compute a 2pi-periodic function on the triangle corners whose 0 (mod 2pi)
isolines are stripes following the field, spaced according to the frequencies.
'''
import numpy as np
from tqdm import tqdm
from scipy.sparse import coo_matrix, diags, eye
from Stripes.Auxiliary import as_complex_field
from Stripes.DirectionField import compute_face_index
from Stripes.Eigen import smallest_eigenvector_positive_definite, N_ITERATIONS, TOLERANCE, SEED


# Diagonal shift keeping the energy matrix positive definite
ENERGY_SHIFT = 1e-4


def compute_omega(mesh, direction_field, frequencies, e):
    '''
    The 1-form omega on edge e (eq. 7 of the paper), i.e. the expected phase
    advance along its canonical halfedge, and whether the roots of the line
    field at the two endpoints lie on different sheets.
    '''
    lengths = mesh.require('edge_lengths')
    vectors = mesh.require('halfedge_vectors_in_vertex')
    transport = mesh.require('transport_vectors_along_halfedge')

    h = mesh.e_halfedge[e]
    i, j = mesh.E[e]

    # Roots of the power representation
    X_i = np.exp(1j * np.angle(direction_field[i]) / 2)
    X_j = np.exp(1j * np.angle(direction_field[j]) / 2)

    # Do the transported root at i and the root at j point the same way
    r_ij = transport[h]
    s = 1 if np.real(np.conj(X_j) * r_ij * X_i) > 0 else -1

    phi_i = np.angle(X_i)
    phi_j = np.angle(s * X_j)

    # Angle of the edge in the bases of its endpoints
    theta_i = np.angle(vectors[h])
    theta_j = theta_i + np.angle(r_ij)

    omega = (lengths[e] / 2) * (frequencies[i] * np.cos(phi_i - theta_i) +
                                frequencies[j] * np.cos(phi_j - theta_j))

    return omega, s < 0

def build_vertex_energy_matrix(mesh, direction_field, branch_indices, frequencies, shift=ENERGY_SHIFT):
    '''
    Laplace-like energy matrix acting on the real and imaginary parts of a
    complex vertex function, so that complex conjugation can be represented.
        Output:
            A: (2N, 2N) sparse symmetric matrix
    '''
    cotan_weights = mesh.require('halfedge_cotan_weights')

    rows = []
    cols = []
    data = []

    for e in tqdm(range(len(mesh.E)),
                  desc='Assembling the energy matrix',
                  leave=False,
                  disable=not mesh.verbose):
        omega, crosses_sheets = compute_omega(mesh, direction_field, frequencies, e)

        # Singular faces do not contribute to the energy
        h = mesh.e_halfedge[e]
        t = mesh.he_twin[h]

        w = 0.
        if branch_indices[mesh.he_face[h]] == 0:
            w += cotan_weights[h]
        if not mesh.is_boundary_edge(e) and branch_indices[mesh.he_face[t]] == 0:
            w += cotan_weights[t]

        i = 2 * mesh.tail(h)
        j = 2 * mesh.tip(h)

        # Diagonal terms
        rows += [i, i + 1, j, j + 1]
        cols += [i, i + 1, j, j + 1]
        data += [w, w, w, w]

        r = w * np.exp(1j * omega)

        # Terms shared by both cases
        rows += [i, i + 1, j, j]
        cols += [j, j, i, i + 1]
        data += [-r.real, r.imag, -r.real, r.imag]

        # Across sheets the block represents conjugation as well as multiplication
        if crosses_sheets:
            r = -r

        rows += [i, i + 1, j + 1, j + 1]
        cols += [j + 1, j + 1, i, i + 1]
        data += [-r.imag, -r.real, -r.imag, -r.real]

    n = 2 * len(mesh.V)
    A = coo_matrix((data, (rows, cols)), shape=(n, n)).tocsc()

    return A + shift * eye(n, format='csc')

def compute_real_vertex_mass_matrix(mesh):
    '''
    Lumped mass matrix with each dual area repeated for the real and imaginary parts.
    '''
    areas = mesh.require('vertex_dual_areas')
    return diags(np.repeat(areas, 2), format='csc')

def compute_parameterization(mesh, direction_field, branch_indices, frequencies,
                             shift=ENERGY_SHIFT, n_iterations=N_ITERATIONS, tol=TOLERANCE, seed=SEED):
    '''
    Solve the generalized eigenvalue problem (eq. 9 of the paper) and return
    the smallest eigenvector as a unit complex number per vertex.
    '''
    areas = mesh.require('vertex_dual_areas')
    if np.any(areas <= 0):
        raise ValueError(f'The vertices {np.where(areas <= 0)[0]} have no dual area.')

    components = mesh.connected_components()
    if len(components) > 1:
        raise ValueError(f'The mesh has {len(components)} connected components, expected one.')

    A = build_vertex_energy_matrix(mesh, direction_field, branch_indices, frequencies, shift=shift)
    B = compute_real_vertex_mass_matrix(mesh)

    solution = smallest_eigenvector_positive_definite(
        A, B, n_iterations=n_iterations, tol=tol, seed=seed, verbose=mesh.verbose
    )

    parameterization = solution[0::2] + 1j * solution[1::2]
    norms = np.abs(parameterization)

    # Small but nonzero values are normalised as they are
    degenerate = norms == 0
    if np.any(degenerate):
        raise ValueError(f'The parameterization vanishes at the vertices {np.where(degenerate)[0]}.')

    return parameterization / norms

def integrate_face_phases(mesh, direction_field, frequencies, parameterization, f):
    '''
    Integrate omega around face f starting from the argument of the
    parameterization at its first corner.
        Output:
            alpha_i, alpha_j, alpha_k: phases at the three corners
            alpha_l: phase after walking once around the face
    '''
    h_ij, h_jk, h_ki = mesh.face_halfedges(f)

    psi_i = parameterization[mesh.tail(h_ij)]
    psi_j = parameterization[mesh.tail(h_jk)]
    psi_k = parameterization[mesh.tail(h_ki)]

    # -1 where the face traverses the edge against its canonical halfedge
    c_ij = -1 if mesh.e_halfedge[mesh.he_edge[h_ij]] != h_ij else 1
    c_jk = -1 if mesh.e_halfedge[mesh.he_edge[h_jk]] != h_jk else 1
    c_ki = -1 if mesh.e_halfedge[mesh.he_edge[h_ki]] != h_ki else 1

    omega_ij, crosses_sheets_ij = compute_omega(mesh, direction_field, frequencies, mesh.he_edge[h_ij])
    omega_jk, crosses_sheets_jk = compute_omega(mesh, direction_field, frequencies, mesh.he_edge[h_jk])
    omega_ki, crosses_sheets_ki = compute_omega(mesh, direction_field, frequencies, mesh.he_edge[h_ki])

    omega_ij *= c_ij
    omega_jk *= c_jk
    omega_ki *= c_ki

    if crosses_sheets_ij:
        psi_j = np.conj(psi_j)
        omega_ij *= c_ij
        omega_jk *= -c_jk

    if crosses_sheets_ki:
        psi_k = np.conj(psi_k)
        omega_ki *= -c_ki
        omega_jk *= c_jk

    r_ij = np.exp(1j * omega_ij)
    r_jk = np.exp(1j * omega_jk)
    r_ki = np.exp(1j * omega_ki)

    # Corner angles closest to the target omegas
    alpha_i = np.angle(psi_i)
    alpha_j = alpha_i + omega_ij - np.angle(r_ij * psi_i / psi_j)
    alpha_k = alpha_j + omega_jk - np.angle(r_jk * psi_j / psi_k)
    alpha_l = alpha_k + omega_ki - np.angle(r_ki * psi_k / psi_i)

    return alpha_i, alpha_j, alpha_k, alpha_l

def compute_texture_coordinates(mesh, direction_field, frequencies, parameterization):
    '''
    Corner values of the stripe pattern and the singularity index of the pattern on each face.
        Output:
            texture_coordinates: (M, 3) array, entry [f, k] at the corner of vertex F[f, k]
            stripe_indices: (M,) int array
    '''
    texture_coordinates = np.zeros(mesh.F.shape)
    stripe_indices = np.zeros(len(mesh.F), dtype=int)

    for f in tqdm(range(len(mesh.F)),
                  desc='Computing texture coordinates',
                  leave=False,
                  disable=not mesh.verbose):
        alpha_i, alpha_j, alpha_k, alpha_l = integrate_face_phases(
            mesh, direction_field, frequencies, parameterization, f
        )

        texture_coordinates[f] = [alpha_i, alpha_j, alpha_k]
        stripe_indices[f] = int(np.round((alpha_l - alpha_i) / (2 * np.pi)))

    return texture_coordinates, stripe_indices

def compute_stripe_pattern(mesh, frequencies, direction_field,
                           shift=ENERGY_SHIFT, n_iterations=N_ITERATIONS, tol=TOLERANCE, seed=SEED):
    '''
    Compute a stripe pattern following a line field.
        Input:
            mesh: Triangle_mesh
            frequencies: (N,) array or scalar, stripes per unit length
            direction_field: (N,) complex array or (N, 2) array, line field in power representation
        Output:
            texture_coordinates: (M, 3) array of corner values
            stripe_indices: (M,) int array, singularities of the pattern
            field_indices: (M,) int array, singularities of the line field
    '''
    direction_field = as_complex_field(direction_field, len(mesh.V))

    frequencies = np.asarray(frequencies, dtype=float)
    if frequencies.ndim == 0:
        frequencies = np.full(len(mesh.V), float(frequencies))
    elif frequencies.shape != (len(mesh.V),):
        raise ValueError(f'Expected {len(mesh.V)} frequencies, got {frequencies.shape}.')

    # Find the singularities of the line field
    field_indices = compute_face_index(mesh, direction_field, 2)

    # Multiply by 2pi to get the right frequencies
    parameterization = compute_parameterization(
        mesh, direction_field, field_indices, 2 * np.pi * frequencies,
        shift=shift, n_iterations=n_iterations, tol=tol, seed=seed
    )

    texture_coordinates, stripe_indices = compute_texture_coordinates(
        mesh, direction_field, 2 * np.pi * frequencies, parameterization
    )

    if mesh.verbose:
        print('Field singularities:', np.count_nonzero(field_indices),
              '| Stripe singularities:', np.count_nonzero(stripe_indices))

    return texture_coordinates, stripe_indices, field_indices
