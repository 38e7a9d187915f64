import numpy as np
import networkx as nx
from tqdm import tqdm
from Stripes.Auxiliary import accumarray, normalise


class Triangle_mesh():
    '''
    A half-edge triangle mesh with lazily computed geometric quantities.

    Interior halfedge 3 * f + k runs from F[f, k] to F[f, (k + 1) % 3],
    so it also indexes the corner of face f at vertex F[f, k].
    Exterior halfedges (along boundary loops) are stored after the interior ones
    and have face index -1.
    '''
    def __init__(self, V, F, verbose=False):
        self.V = np.asarray(V, dtype=float)
        self.F = np.asarray(F, dtype=int)
        self.verbose = verbose

        if self.V.ndim != 2 or self.V.shape[1] != 3:
            raise ValueError(f'Expected vertices of shape (N, 3), got {self.V.shape}.')
        if self.F.ndim != 2 or self.F.shape[1] != 3:
            raise ValueError(f'Expected triangular faces of shape (M, 3), got {self.F.shape}.')
        if np.any(self.F < 0) or np.any(self.F >= len(self.V)):
            raise ValueError('The faces refer to vertices that do not exist.')

        # Memoized geometric quantities, filled by require()
        self.quantities = {}

        self.construct_halfedges()
        self.construct_edges()
        self.construct_vertex_halfedges()

        self.euler_characteristic = len(self.V) - len(self.E) + len(self.F)
        self.genus = (2 - self.euler_characteristic - self.count_boundary_loops()) // 2

        if self.verbose:
            print('Genus of the mesh:', self.genus)

    def construct_halfedges(self):
        '''
        Construct the next, twin, vertex and face arrays of the halfedges,
        adding exterior halfedges for boundary edges.
        '''
        n_interior = 3 * len(self.F)
        tails = self.F.flatten().tolist()
        tips = np.roll(self.F, -1, axis=1).flatten().tolist()

        he_vertex = list(tails)
        he_face = np.repeat(np.arange(len(self.F)), 3).tolist()
        he_next = (3 * (np.arange(n_interior) // 3) + (np.arange(n_interior) + 1) % 3).tolist()
        he_twin = [-1] * n_interior

        directed = {}
        for h, (a, b) in enumerate(zip(tails, tips)):
            if (a, b) in directed:
                raise ValueError(f'The directed edge ({a}, {b}) appears twice, '
                                 'the mesh is non-manifold or inconsistently oriented.')
            directed[(a, b)] = h

        # Exterior halfedge leaving each boundary vertex
        boundary_out = {}

        for h in tqdm(range(n_interior),
                      desc='Pairing halfedges',
                      leave=False,
                      disable=not self.verbose):
            if he_twin[h] >= 0:
                continue

            a, b = tails[h], tips[h]

            if (b, a) in directed:
                t = directed[(b, a)]
            else:
                # Boundary edge: the twin is an exterior halfedge from b to a
                t = len(he_vertex)
                he_vertex.append(b)
                he_face.append(-1)
                he_next.append(-1)
                he_twin.append(-1)

                if b in boundary_out:
                    raise ValueError(f'Vertex {b} lies on more than one boundary fan.')
                boundary_out[b] = t

            he_twin[h] = t
            he_twin[t] = h

        # Link the exterior halfedges into boundary loops
        for t in range(n_interior, len(he_vertex)):
            a = he_vertex[he_twin[t]]
            if a not in boundary_out:
                raise ValueError(f'The boundary through vertex {a} is not closed.')
            he_next[t] = boundary_out[a]

        self.he_vertex = np.array(he_vertex, dtype=int)
        self.he_face = np.array(he_face, dtype=int)
        self.he_next = np.array(he_next, dtype=int)
        self.he_twin = np.array(he_twin, dtype=int)
        self.n_interior_halfedges = n_interior

    def construct_edges(self):
        '''
        Assign an edge to every pair of twin halfedges.
        The canonical halfedge of an edge is its first interior halfedge.
        '''
        he_edge = np.full(len(self.he_vertex), -1, dtype=int)
        e_halfedge = []

        for h in range(self.n_interior_halfedges):
            if he_edge[h] >= 0:
                continue
            he_edge[h] = len(e_halfedge)
            he_edge[self.he_twin[h]] = len(e_halfedge)
            e_halfedge.append(h)

        self.he_edge = he_edge
        self.e_halfedge = np.array(e_halfedge, dtype=int)

        # Edges as (tail, tip) of their canonical halfedges
        self.E = np.stack([
            self.he_vertex[self.e_halfedge],
            self.he_vertex[self.he_twin[self.e_halfedge]]
        ], axis=1)

    def construct_vertex_halfedges(self):
        '''
        Pick one outgoing halfedge per vertex. For a boundary vertex it is the
        interior halfedge whose twin is exterior, so that the counter-clockwise
        orbit ends on the boundary.
        '''
        v_halfedge = np.full(len(self.V), -1, dtype=int)
        is_boundary_vertex = np.zeros(len(self.V), dtype=bool)

        for h in range(self.n_interior_halfedges):
            if v_halfedge[self.he_vertex[h]] < 0:
                v_halfedge[self.he_vertex[h]] = h

        for t in range(self.n_interior_halfedges, len(self.he_vertex)):
            h = self.he_twin[t]
            v_halfedge[self.he_vertex[h]] = h
            is_boundary_vertex[self.he_vertex[h]] = True

        self.v_halfedge = v_halfedge
        self.is_boundary_vertex = is_boundary_vertex

    def count_boundary_loops(self):
        visited = np.zeros(len(self.he_vertex), dtype=bool)
        n_loops = 0

        for t in range(self.n_interior_halfedges, len(self.he_vertex)):
            if visited[t]:
                continue
            n_loops += 1
            while not visited[t]:
                visited[t] = True
                t = self.he_next[t]

        return n_loops

    # ------------------------------------------------------------------
    # Adjacency
    # ------------------------------------------------------------------
    def tail(self, h):
        return self.he_vertex[h]

    def tip(self, h):
        return self.he_vertex[self.he_twin[h]]

    def is_boundary_halfedge(self, h):
        '''
        True for exterior halfedges, i.e. those lying in a boundary loop.
        '''
        return self.he_face[h] < 0

    def is_boundary_edge(self, e):
        h = self.e_halfedge[e]
        return self.he_face[self.he_twin[h]] < 0

    def face_halfedges(self, f):
        return [3 * f, 3 * f + 1, 3 * f + 2]

    def outgoing_halfedges(self, v):
        '''
        Outgoing halfedges of v in counter-clockwise order.
        For boundary vertices the exterior outgoing halfedge comes last.
        '''
        start = self.v_halfedge[v]
        halfedges = []

        if start < 0:
            return halfedges

        h = start
        while True:
            halfedges.append(h)

            if self.is_boundary_halfedge(h):
                break

            h = self.he_twin[self.he_next[self.he_next[h]]]

            if h == start:
                break

        return halfedges

    def connected_components(self):
        G = nx.Graph()
        G.add_nodes_from(range(len(self.V)))
        G.add_edges_from(self.E.tolist())

        return list(nx.connected_components(G))

    # ------------------------------------------------------------------
    # Geometric quantities
    # ------------------------------------------------------------------
    def require(self, name):
        '''
        Return the quantity called name, computing it on first access.
        '''
        if name not in self.quantities:
            compute = getattr(self, f'compute_{name}', None)
            if compute is None:
                raise ValueError(f'Unknown geometric quantity: {name}.')
            self.quantities[name] = compute()

        return self.quantities[name]

    def compute_face_normals(self):
        V_F = self.V[self.F]
        normals = np.cross(V_F[:, 1] - V_F[:, 0], V_F[:, 2] - V_F[:, 0])
        norms = np.linalg.norm(normals, axis=1)

        if np.any(norms == 0):
            raise ValueError(f'The face(s) {np.where(norms == 0)[0]} is degenerate.')

        return normals / norms[:, None]

    def compute_face_areas(self):
        V_F = self.V[self.F]
        return 0.5 * np.linalg.norm(np.cross(V_F[:, 1] - V_F[:, 0], V_F[:, 2] - V_F[:, 0]), axis=1)

    def compute_edge_lengths(self):
        return np.linalg.norm(self.V[self.E[:, 1]] - self.V[self.E[:, 0]], axis=1)

    def compute_corner_angles(self):
        '''
        Angle at the tail of each interior halfedge.
        '''
        V_F = self.V[self.F]
        u = np.roll(V_F, -1, axis=1) - V_F
        w = np.roll(V_F, -2, axis=1) - V_F

        cos = np.sum(u * w, axis=2)
        sin = np.linalg.norm(np.cross(u, w), axis=2)

        return np.arctan2(sin, cos).flatten()

    def compute_vertex_angle_sums(self):
        return accumarray(self.F, self.require('corner_angles').reshape(self.F.shape), size=len(self.V))

    def compute_corner_scaled_angles(self):
        '''
        Corner angles rescaled so that they sum to 2pi around interior vertices
        and to pi around boundary vertices.
        '''
        angle_sums = self.require('vertex_angle_sums')
        target = np.where(self.is_boundary_vertex, np.pi, 2 * np.pi)

        scale = np.divide(target, angle_sums, out=np.zeros(len(self.V)), where=angle_sums > 0)

        return self.require('corner_angles') * scale[self.F.flatten()]

    def compute_halfedge_cotan_weights(self):
        '''
        Half the cotangent of the angle opposite each halfedge, zero for exterior halfedges.
        '''
        angles = self.require('corner_angles')
        weights = np.zeros(len(self.he_vertex))

        h = np.arange(self.n_interior_halfedges)
        weights[h] = 0.5 / np.tan(angles[self.he_next[self.he_next[h]]])

        return weights

    def compute_vertex_dual_areas(self):
        areas = self.require('face_areas')
        return accumarray(self.F, np.repeat(areas, 3).reshape(self.F.shape), size=len(self.V)) / 3

    def compute_halfedge_vectors_in_vertex(self):
        '''
        Each halfedge expressed in the intrinsic tangent basis of its tail,
        whose first axis is the vertex's halfedge.
        '''
        lengths = self.require('edge_lengths')
        scaled_angles = self.require('corner_scaled_angles')

        vectors = np.zeros(len(self.he_vertex), dtype=complex)

        for v in tqdm(range(len(self.V)),
                      desc='Computing halfedge vectors in vertices',
                      leave=False,
                      disable=not self.verbose):
            coordinate = 0.
            for h in self.outgoing_halfedges(v):
                vectors[h] = np.exp(1j * coordinate) * lengths[self.he_edge[h]]

                if self.he_face[h] >= 0:
                    coordinate += scaled_angles[h]

        return vectors

    def compute_transport_vectors_along_halfedge(self):
        '''
        Unit complex rotation taking tangent vectors at the tail
        to tangent vectors at the tip of each halfedge.
        '''
        vectors = self.require('halfedge_vectors_in_vertex')

        transport = -vectors[self.he_twin] / vectors
        return transport / np.abs(transport)

    def compute_face_gaussian_curvatures(self):
        '''
        Holonomy of the transport around each face.
        '''
        transport = self.require('transport_vectors_along_halfedge')

        return np.angle(np.prod(transport[:self.n_interior_halfedges].reshape(-1, 3), axis=1))

    def compute_edge_dihedral_angles(self):
        normals = self.require('face_normals')
        angles = np.zeros(len(self.E))

        h = self.e_halfedge
        t = self.he_twin[h]
        interior = self.he_face[t] >= 0

        N1 = normals[self.he_face[h[interior]]]
        N2 = normals[self.he_face[t[interior]]]

        directions = self.V[self.E[interior, 1]] - self.V[self.E[interior, 0]]
        directions = directions / np.linalg.norm(directions, axis=1)[:, None]

        angles[interior] = np.arctan2(
            np.sum(directions * np.cross(N1, N2), axis=1),
            np.sum(N1 * N2, axis=1)
        )

        return angles

    def compute_vertex_principal_curvature_directions(self):
        '''
        Principal curvature directions as a line field in power representation.
        '''
        lengths = self.require('edge_lengths')
        dihedral_angles = self.require('edge_dihedral_angles')
        scaled_angles = self.require('corner_scaled_angles')

        directions = np.zeros(len(self.V), dtype=complex)

        for v in tqdm(range(len(self.V)),
                      desc='Computing principal curvature directions',
                      leave=False,
                      disable=not self.verbose):
            angle_of_edge = 0.
            for h in self.outgoing_halfedges(v):
                e = self.he_edge[h]
                directions[v] += -np.exp(2j * angle_of_edge) * lengths[e] * dihedral_angles[e] / 2

                if self.he_face[h] >= 0:
                    angle_of_edge += scaled_angles[h]

        return directions

    # ------------------------------------------------------------------
    # Conversion between 3D tangent vectors and intrinsic fields
    # ------------------------------------------------------------------
    def tangent_vectors_to_field(self, vectors, n_sym=2, eps=1e-9):
        '''
        Express 3D vectors at the vertices as an n_sym-direction field
        in power representation in the intrinsic vertex bases.
            Input:
                vectors: (N, 3) or (3,) array of vectors
                n_sym: symmetry of the field, 2 for line fields
            Output:
                field: (N,) complex array
        '''
        vectors = np.broadcast_to(np.asarray(vectors, dtype=float), self.V.shape)

        normals = self.require('face_normals')
        corner_angles = self.require('corner_angles')
        scaled_angles = self.require('corner_scaled_angles')

        field = np.zeros(len(self.V), dtype=complex)

        for v in range(len(self.V)):
            halfedges = [h for h in self.outgoing_halfedges(v) if self.he_face[h] >= 0]
            if len(halfedges) == 0:
                continue

            candidates = [vectors[v], -vectors[v]] if n_sym % 2 == 0 else [vectors[v]]

            theta = None
            coordinate = 0.
            for h in halfedges:
                n = normals[self.he_face[h]]
                a = self.V[self.tip(h)] - self.V[v]

                for w in candidates:
                    w_plane = w - np.dot(w, n) * n
                    angle = np.arctan2(np.dot(np.cross(a, w_plane), n), np.dot(a, w_plane))

                    if -eps <= angle <= corner_angles[h] + eps:
                        theta = coordinate + angle * scaled_angles[h] / corner_angles[h]
                        break

                if theta is not None:
                    break
                coordinate += scaled_angles[h]

            # Outside every wedge (e.g. pointing off a boundary): measure against the first halfedge
            if theta is None:
                h = halfedges[0]
                n = normals[self.he_face[h]]
                a = self.V[self.tip(h)] - self.V[v]
                w_plane = vectors[v] - np.dot(vectors[v], n) * n
                theta = np.arctan2(np.dot(np.cross(a, w_plane), n), np.dot(a, w_plane)) * \
                    scaled_angles[h] / corner_angles[h]

            field[v] = np.exp(1j * n_sym * theta)

        return field

    def field_to_tangent_vectors(self, field, n_sym=2):
        '''
        One representative 3D vector per vertex of an n_sym-direction field
        in power representation, scaled by the field's magnitude.
        '''
        normals = self.require('face_normals')
        corner_angles = self.require('corner_angles')
        scaled_angles = self.require('corner_scaled_angles')

        vectors = np.zeros(self.V.shape)

        for v in range(len(self.V)):
            halfedges = [h for h in self.outgoing_halfedges(v) if self.he_face[h] >= 0]
            if len(halfedges) == 0:
                continue

            theta = np.mod(np.angle(field[v]) / n_sym, 2 * np.pi / n_sym)

            coordinate = 0.
            for h in halfedges:
                if theta <= coordinate + scaled_angles[h] or h == halfedges[-1]:
                    break
                coordinate += scaled_angles[h]

            angle = (theta - coordinate) * corner_angles[h] / scaled_angles[h]

            n = normals[self.he_face[h]]
            a = normalise(self.V[self.tip(h)] - self.V[v])
            b = np.cross(n, a)

            vectors[v] = np.abs(field[v]) * (np.cos(angle) * a + np.sin(angle) * b)

        return vectors
