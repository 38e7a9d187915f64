'''
Extraction of the 0 (mod 2pi) isolines of a stripe pattern given by corner values.
'''
import numpy as np
from tqdm import tqdm


class IsolineBranchingError(ValueError):
    '''
    Raised when a regular face is crossed by more than two isolines.
    '''


class Isoline():
    '''
    A stripe as a sequence of (halfedge, t) crossings, where the point lies at
    t * p(tail) + (1 - t) * p(tip) of the halfedge.
    '''
    def __init__(self):
        self.barycenters = []
        self.open = True

    def __len__(self):
        return len(self.barycenters)

    def __repr__(self):
        return f'Isoline({len(self.barycenters)} points, open={self.open})'


class TraceResult():
    '''
    Outcome of tracing the isolines. If a face with more than two crossings
    was met, the trace stops there and branching_face holds its index.
    '''
    def __init__(self, isolines, branching_face=None):
        self.isolines = isolines
        self.branching_face = branching_face

    @property
    def ok(self):
        return self.branching_face is None

    def unwrap(self):
        if not self.ok:
            raise IsolineBranchingError(
                f'Face {self.branching_face} is crossed by more than two isolines, '
                'isolines should only branch out on singularities.'
            )
        return self.isolines


def crosses_modulo_2pi(v1, v2):
    '''
    Check if some 2 k pi lies between v1 and v2 (strictly above the smaller one).
        Output:
            t: barycentric parameter of the crossing, t * v1 + (1 - t) * v2 = 2 k pi,
               or None if there is no crossing
    '''
    if v1 == v2:
        return None

    if v1 < v2:
        isovalue = 2 * np.pi * np.ceil(v1 / (2 * np.pi))
        if v2 > isovalue:
            return (isovalue - v2) / (v1 - v2)
    else:
        isovalue = 2 * np.pi * np.ceil(v2 / (2 * np.pi))
        if v1 > isovalue:
            return (isovalue - v2) / (v1 - v2)

    return None

def as_corner_values(mesh, values):
    '''
    Flatten corner values of shape (M, 3) so that they are indexed by interior halfedge.
    '''
    values = np.asarray(values, dtype=float)

    if values.shape == mesh.F.shape:
        return values.flatten()
    if values.shape == (mesh.n_interior_halfedges,):
        return values

    raise ValueError(f'Expected corner values of shape {mesh.F.shape}, got {values.shape}.')

def extract_isolines_from_stripe_pattern(mesh, values, stripe_indices, field_indices):
    '''
    Trace the isolines of the corner values through the regular faces.
        Input:
            mesh: Triangle_mesh
            values: (M, 3) array of corner values
            stripe_indices, field_indices: (M,) int arrays, singular faces are nonzero
        Output:
            TraceResult
    '''
    values = as_corner_values(mesh, values)
    stripe_indices = np.asarray(stripe_indices)
    field_indices = np.asarray(field_indices)

    if stripe_indices.shape != (len(mesh.F),) or field_indices.shape != (len(mesh.F),):
        raise ValueError(f'Expected {len(mesh.F)} stripe and field indices, '
                         f'got {stripe_indices.shape} and {field_indices.shape}.')

    singular = (stripe_indices != 0) | (field_indices != 0)

    def crossing(h):
        return crosses_modulo_2pi(values[h], values[mesh.he_next[h]])

    isolines = []
    visited = np.zeros(len(mesh.F), dtype=bool)

    for f in tqdm(range(len(mesh.F)),
                  desc='Tracing isolines',
                  leave=False,
                  disable=not mesh.verbose):
        if visited[f] or singular[f]:
            continue
        visited[f] = True

        iso = Isoline()
        n_pieces = 0

        for h in mesh.face_halfedges(f):
            t = crossing(h)
            if t is None:
                continue

            n_pieces += 1
            iso_points = [(int(h), float(t))]

            prev_face = f
            cur_face = mesh.he_face[mesh.he_twin[h]]
            done = False

            while cur_face >= 0 and not done and not singular[cur_face]:
                visited[cur_face] = True
                done = True

                for he in mesh.face_halfedges(cur_face):
                    opp_face = mesh.he_face[mesh.he_twin[he]]

                    # Do not go back through the shared edge
                    if opp_face == prev_face:
                        continue

                    t = crossing(he)
                    if t is None:
                        continue

                    if opp_face >= 0 and visited[opp_face]:
                        done = True
                        # Back at the seed face, the isoline is a loop
                        if opp_face == f:
                            iso.open = False
                    else:
                        done = opp_face < 0 or singular[opp_face]

                        iso_points.append((int(he), float(t)))
                        prev_face = cur_face
                        cur_face = opp_face
                    break

            # Reverse the first piece and stitch the second one to its end
            if len(iso.barycenters) == 0:
                iso.barycenters.extend(reversed(iso_points))
            else:
                iso.barycenters.extend(iso_points)

        if n_pieces > 0:
            isolines.append(iso)

        # Isolines stop at singularities, so they should never branch out
        if n_pieces > 2:
            return TraceResult(isolines, branching_face=f)

    if mesh.verbose:
        print('Isolines:', len(isolines), '| closed:', sum(not iso.open for iso in isolines))

    return TraceResult(isolines)

def isolines_to_polylines(mesh, isolines):
    '''
    Realise the isolines in space.
        Output:
            points: (K, 3) array
            edges: (L, 2) int array of point indices
    '''
    points = []
    edges = []

    for iso in isolines:
        start = len(points)

        for h, t in iso.barycenters:
            points.append(t * mesh.V[mesh.tail(h)] + (1 - t) * mesh.V[mesh.tip(h)])

        edges += [[i, i + 1] for i in range(start, len(points) - 1)]

        # Close the loop
        if not iso.open:
            edges.append([len(points) - 1, start])

    return np.array(points).reshape(-1, 3), np.array(edges, dtype=int).reshape(-1, 2)

def extract_polylines_from_stripe_pattern(mesh, values, stripe_indices, field_indices):
    '''
    Trace the isolines of a stripe pattern and realise them as polylines.
    Raises IsolineBranchingError if the tracing meets a branching face.
    '''
    isolines = extract_isolines_from_stripe_pattern(mesh, values, stripe_indices, field_indices).unwrap()
    return isolines_to_polylines(mesh, isolines)
