"""
Utility code for frame shifts, convolutive reconstruction, convex hull points and initializers
"""
import logging

import numpy as np
import scipy.cluster.vq
import scipy.sparse.linalg
from scipy.spatial import ConvexHull, QhullError

logger = logging.getLogger("chcnmf")


def shift_right(X, s):
    """
    Shift the columns of X right by s, zero-filling the first s columns
    """
    out = np.zeros_like(X)
    n = X.shape[1]
    if s < n:
        out[:, s:] = X[:, :n - s]
    return out


def shift_left(X, s):
    """
    Shift the columns of X left by s, zero-filling the last s columns
    """
    out = np.zeros_like(X)
    n = X.shape[1]
    if s < n:
        out[:, :n - s] = X[:, s:]
    return out


def split_pos_neg(X):
    """
    returns (max(X,0), max(-X,0))
    """
    X_abs = np.abs(X)
    return 0.5*(X_abs + X), 0.5*(X_abs - X)


def build_basis(S, G):
    """
    W[:,:,t] = S @ G[:,:,t] for every frame
    """
    W = np.zeros((S.shape[0], G.shape[1], G.shape[2]))
    for t in range(G.shape[2]):
        W[:, :, t] = S @ G[:, :, t]
    return W


def reconstruct_from_decomposition(W, H):
    """
    Convolutive reconstruction, V_hat = sum_t W[:,:,t] @ shift_right(H,t)
    """
    V_hat = np.zeros((W.shape[0], H.shape[1]))
    for t in range(W.shape[2]):
        V_hat += W[:, :, t] @ shift_right(H, t)
    return V_hat


def reconstruction_cost(V, V_hat):
    return 0.5*np.sum((V - V_hat)**2)


def _hull_indices(projected_data):
    try:
        return ConvexHull(projected_data).vertices
    except QhullError:
        # flat projection (collinear or fewer than 3 points), keep the two ends along the wider axis
        logger.warning('Degenerate 2D projection, using extreme points instead of the convex hull')
        axis = np.argmax(np.ptp(projected_data, axis=0))
        return np.unique([np.argmin(projected_data[:, axis]), np.argmax(projected_data[:, axis])])


def convex_hull_points(V, num_basis_elems):
    """
    Points of V lying on the convex hull, collected from the 2D hulls of V projected onto
    every pair of the top eigenvectors of the data covariance. Duplicate points are removed.
    returns S (m x p)
    """
    m = V.shape[0]
    if m == 1:
        return np.array([[np.min(V), np.max(V)]])

    data_cov = np.cov(V)
    num_eigs = max(min(num_basis_elems, m), 2)
    if num_eigs >= m:
        _, eigenvecs = np.linalg.eigh(data_cov)
        eigenvecs = eigenvecs[:, ::-1]
    else:
        _, eigenvecs = scipy.sparse.linalg.eigsh(data_cov, k=num_eigs, which='LA')
        eigenvecs = eigenvecs[:, ::-1]

    S = np.zeros((m, 0))
    for e1 in range(num_eigs - 1):
        for e2 in range(e1 + 1, num_eigs):
            projected_data = V.T @ eigenvecs[:, [e1, e2]]
            convexhull_idx = _hull_indices(projected_data)
            S = np.hstack([S, V[:, convexhull_idx]])
            S = np.unique(S.T, axis=0).T
    return S


def init_G(num_points, num_basis_elems, num_frames, rng=None):
    """
    Random convex combination tensor, every G[:,k,t] sums to one
    """
    rng = np.random.default_rng(rng)
    G = rng.random((num_points, num_basis_elems, num_frames))
    return G/np.sum(G, axis=0, keepdims=True)


def init_H(num_basis_elems, n, rng=None):
    rng = np.random.default_rng(rng)
    return rng.random((num_basis_elems, n))


def init_H_kmeans(V, num_basis_elems, jitter=0.2, rng=None):
    """
    Cluster membership indicators from k-means on the columns of V, plus uniform jitter
    """
    rng = np.random.default_rng(rng)
    _, cluster_idx = scipy.cluster.vq.kmeans2(V.T.astype(float), num_basis_elems, minit='++', seed=rng)
    H = np.zeros((num_basis_elems, V.shape[1]))
    H[cluster_idx, np.arange(V.shape[1])] = 1.0
    return H + jitter*rng.random((num_basis_elems, V.shape[1]))


def gaussian_cluster_data(centers, points_per_cluster = 5, sigma = 0.1, rng=None):
    """
    Columns drawn around each center (centers: m x c)
    returns V (m x c*points_per_cluster) and the cluster labels
    """
    rng = np.random.default_rng(rng)
    centers = np.asarray(centers, dtype=float)
    labels = np.repeat(np.arange(centers.shape[1]), points_per_cluster)
    V = centers[:, labels] + sigma*rng.standard_normal((centers.shape[0], labels.shape[0]))
    return V, labels


def synthetic_convolutive_mix(m = 8, n = 200, num_basis_elems = 3, num_frames = 4, density = 0.05, sigma2 = 0.0, rng=None):
    """
    Generate a mixed-sign convolutive mixture V = reconstruct(W,H) + noise
    with sparse non-negative onsets in H
    returns V, W, H
    """
    rng = np.random.default_rng(rng)
    W = rng.standard_normal((m, num_basis_elems, num_frames))
    H = rng.random((num_basis_elems, n))*(rng.random((num_basis_elems, n)) < density)
    V = reconstruct_from_decomposition(W, H)
    if sigma2 > 0:
        V = V + np.sqrt(sigma2)*rng.standard_normal(V.shape)
    return V, W, H
