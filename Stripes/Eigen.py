import numpy as np
from scipy.sparse import csc_matrix
from scipy.sparse.linalg import splu


N_ITERATIONS = 50
TOLERANCE = 1e-10
SEED = 0


class EigenSolverError(RuntimeError):
    '''
    Raised when the generalized eigenvalue problem cannot be solved.
    '''


def smallest_eigenvector_positive_definite(A, B, n_iterations=N_ITERATIONS, tol=TOLERANCE, seed=SEED, verbose=False):
    '''
    Eigenvector of the smallest eigenvalue of A x = lambda B x
    by inverse power iteration, for symmetric positive definite A and B.
        Input:
            A: (n, n) sparse energy matrix
            B: (n, n) sparse mass matrix
        Output:
            x: (n,) array with x^T B x = 1
    '''
    if A.shape != B.shape or A.shape[0] != A.shape[1]:
        raise ValueError(f'Expected square matrices of equal shape, got {A.shape} and {B.shape}.')
    if n_iterations < 1:
        raise ValueError(f'At least one iteration is needed, got {n_iterations}.')

    try:
        lu = splu(csc_matrix(A))
    except RuntimeError as error:
        raise EigenSolverError(f'Factorisation of the energy matrix failed: {error}') from error

    def B_normalise(x):
        scale = np.sqrt(np.abs(x @ (B @ x)))
        if not np.isfinite(scale) or scale == 0:
            raise EigenSolverError('The iterate has zero or non-finite mass norm.')
        return x / scale

    # Fixed seed so that repeated solves give identical results
    x = B_normalise(np.random.default_rng(seed).standard_normal(A.shape[0]))

    residual = np.inf
    for iteration in range(n_iterations):
        x = B_normalise(lu.solve(B @ x))

        Ax = A @ x
        Bx = B @ x
        eigenvalue = x @ Ax
        residual = np.linalg.norm(Ax - eigenvalue * Bx)

        if residual < tol:
            break

    if not np.all(np.isfinite(x)):
        raise EigenSolverError('Inverse power iteration produced non-finite values.')

    if verbose:
        print(f'Smallest eigenvalue {eigenvalue:.6e} after {iteration + 1} iterations, residual {residual:.3e}')

    return x
