import numpy as np


def load_off_file(file_path):
    with open(file_path, 'r') as file:
        lines = [line for line in file.readlines() if line.strip() and not line.startswith('#')]

    if lines[0].strip() != 'OFF':
        raise ValueError(f'{file_path} is not an OFF file.')

    # Parse the vertices and faces from the OFF file
    num_vertices, num_faces, _ = map(int, lines[1].split())

    vertices = np.array([list(map(float, line.split()[:3])) for line in lines[2:2 + num_vertices]])
    faces = np.array([list(map(int, line.split()))[1:4] for line in lines[2 + num_vertices:2 + num_vertices + num_faces]])

    return vertices, faces

def accumarray(indices, values, size=None):
    '''
    Accumulate values into an array using the indices.
    '''
    if size is None:
        size = np.max(indices) + 1

    output = np.zeros(size, dtype=values.dtype)
    indFlat = indices.flatten()
    valFlat = values.flatten()
    np.add.at(output, indFlat, valFlat)

    return output

def normalise(v):
    """Normalize a vector."""
    return v / np.linalg.norm(v)

def wrap_angle(theta):
    '''
    Wrap angles into [-pi, pi).
    '''
    return np.mod(theta + np.pi, 2 * np.pi) - np.pi

def as_complex_field(field, n):
    '''
    Return a per-vertex 2D field as a complex array of length n.
        Input:
            field: (n,) complex array or (n, 2) real array
            n: expected number of entries
        Output:
            (n,) complex array
    '''
    field = np.asarray(field)

    if field.ndim == 2 and field.shape[1] == 2:
        field = field[:, 0] + 1j * field[:, 1]
    elif field.ndim != 1:
        raise ValueError(f'Expected a field of shape ({n},) or ({n}, 2), got {field.shape}.')

    if field.shape[0] != n:
        raise ValueError(f'Expected {n} field values, got {field.shape[0]}.')

    return field.astype(complex)

def build_grid(n_x, n_y, width=1., height=1., origin=(0., 0.)):
    '''
    A flat rectangular grid in the xy-plane,
    each cell split into two counter-clockwise triangles.
        Output:
            V: ((n_x + 1) * (n_y + 1), 3) array of vertices
            F: (2 * n_x * n_y, 3) array of faces
    '''
    xs = origin[0] + np.linspace(0, width, n_x + 1)
    ys = origin[1] + np.linspace(0, height, n_y + 1)

    X, Y = np.meshgrid(xs, ys)
    V = np.stack([X.flatten(), Y.flatten(), np.zeros(X.size)], axis=1)

    F = []
    for j in range(n_y):
        for i in range(n_x):
            a = j * (n_x + 1) + i
            b = a + 1
            c = b + n_x + 1
            d = a + n_x + 1

            F.append([a, b, c])
            F.append([a, c, d])

    return V, np.array(F, dtype=int)

def build_cylinder(n_around, n_height, radius=1., height=1.):
    '''
    An open cylinder around the z-axis made of planar rectangles
    split into triangles, with outward normals.
    The result is intrinsically flat: interior angle sums are 2pi, rim angle sums are pi.
        Output:
            V: (n_around * (n_height + 1), 3) array of vertices
            F: (2 * n_around * n_height, 3) array of faces
    '''
    angles = 2 * np.pi * np.arange(n_around) / n_around
    zs = np.linspace(0, height, n_height + 1)

    V = np.array([
        [radius * np.cos(angle), radius * np.sin(angle), z] for z in zs for angle in angles
    ])

    F = []
    for k in range(n_height):
        for j in range(n_around):
            a = k * n_around + j
            b = k * n_around + (j + 1) % n_around
            c = b + n_around
            d = a + n_around

            F.append([a, b, c])
            F.append([a, c, d])

    return V, np.array(F, dtype=int)

def build_icosphere(level, radius=1.):
    '''
    A sphere made by splitting the faces of an icosahedron into four,
    level times, and projecting the vertices onto the sphere.
        Output:
            V: (10 * 4^level + 2, 3) array of vertices
            F: (20 * 4^level, 3) array of faces, with outward normals
    '''
    phi = (1 + np.sqrt(5)) / 2

    V = [
        [-1, phi, 0], [1, phi, 0], [-1, -phi, 0], [1, -phi, 0],
        [0, -1, phi], [0, 1, phi], [0, -1, -phi], [0, 1, -phi],
        [phi, 0, -1], [phi, 0, 1], [-phi, 0, -1], [-phi, 0, 1]
    ]
    V = [normalise(np.array(v, dtype=float)) for v in V]

    F = [
        [0, 11, 5], [0, 5, 1], [0, 1, 7], [0, 7, 10], [0, 10, 11],
        [1, 5, 9], [5, 11, 4], [11, 10, 2], [10, 7, 6], [7, 1, 8],
        [3, 9, 4], [3, 4, 2], [3, 2, 6], [3, 6, 8], [3, 8, 9],
        [4, 9, 5], [2, 4, 11], [6, 2, 10], [8, 6, 7], [9, 8, 1]
    ]

    for _ in range(level):
        midpoints = {}

        def midpoint(a, b):
            key = (min(a, b), max(a, b))
            if key not in midpoints:
                midpoints[key] = len(V)
                V.append(normalise((V[a] + V[b]) / 2))
            return midpoints[key]

        F_new = []
        for a, b, c in F:
            ab = midpoint(a, b)
            bc = midpoint(b, c)
            ca = midpoint(c, a)

            F_new += [[a, ab, ca], [b, bc, ab], [c, ca, bc], [ab, bc, ca]]
        F = F_new

    V = radius * np.array(V)

    return V, np.array(F, dtype=int)
