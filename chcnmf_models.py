# Convex Hull-CNMF with Multiplicative Updates
"""
Decompose a (possibly mixed-sign) matrix V into S*G*H using Convex Hull-CNMF [1] by
minimizing the Euclidean distance between V and the convolutive reconstruction.
W[:,:,t] = S @ G[:,:,t] is the basis tensor, the columns of each G[:,:,t] form convex
combinations of the points S on the convex hull of V, and H encodes V in terms of W.

[1] C. Vaz, A. Toutios, and S. Narayanan, "Convex Hull Convolutive Non-negative Matrix
Factorization for Uncovering Temporal Patterns in Multivariate Time-Series Data,"
in Interspeech, 2016.
"""

import logging

import numpy as np
import tqdm

from config import as_config
from utils import (build_basis, convex_hull_points, init_G, init_H, reconstruct_from_decomposition,
                   reconstruction_cost, shift_left, shift_right, split_pos_neg)

logger = logging.getLogger("chcnmf")
logger.setLevel(logging.WARNING)
if len(logger.handlers) < 1:
    ch = logging.StreamHandler()
    ch.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
    logger.addHandler(ch)


def _check_shape(name, X, expected):
    if X.shape != expected:
        raise ValueError(f"{name} has shape {X.shape}, expected {expected}")


def _encoding_accumulator(G, H):
    """
    F = sum_t G[:,:,t] @ shift_right(H,t)
    """
    F = np.zeros((G.shape[0], H.shape[1]))
    for t in range(G.shape[2]):
        F += G[:, :, t] @ shift_right(H, t)
    return F


def _update_G(G_prev, H, S, splits, G_sparsity, W):
    """
    One frame-sequential sweep over G. Frame t reads F built from the updated frames < t
    and the previous frames >= t. W is updated in place for every frame.
    """
    S_V_pos, S_V_neg, S_S_pos, S_S_neg = splits
    G = np.empty_like(G_prev)
    F = _encoding_accumulator(G_prev, H)
    for t in range(G_prev.shape[2]):
        H_shifted = shift_right(H, t)
        numer = (S_V_pos + S_S_neg @ F) @ H_shifted.T
        denom = (S_V_neg + S_S_pos @ F) @ H_shifted.T + G_sparsity
        G_t = G_prev[:, :, t]*(numer/denom)
        G_t = G_t/np.sum(G_t, axis=0, keepdims=True)
        G[:, :, t] = G_t

        F = np.maximum(F + (G_t - G_prev[:, :, t]) @ H_shifted, 0)
        W[:, :, t] = S @ G[:, :, t]
    return G


def _update_H(G, H, splits, H_sparsity):
    S_V_pos, S_V_neg, S_S_pos, S_S_neg = splits
    F = _encoding_accumulator(G, H)
    # shifting left after the product equals multiplying by the left-shifted identity
    numer_base = S_V_pos + S_S_neg @ F
    denom_base = S_V_neg + S_S_pos @ F
    negative_grad = np.zeros_like(H)
    positive_grad = np.zeros_like(H)
    for t in range(G.shape[2]):
        negative_grad += G[:, :, t].T @ shift_left(numer_base, t)
        positive_grad += G[:, :, t].T @ shift_left(denom_base, t)
    return H*(negative_grad/(positive_grad + H_sparsity))


def chcnmf(V, num_basis_elems, num_frames, config=None, reconstruct=reconstruct_from_decomposition,
           hull_init=convex_hull_points, rng=None, show_progress=False):
    """
    Convex Hull-CNMF.

    Parameters
    ----------
    V : m-by-n data matrix, entries may have mixed sign.
    num_basis_elems : number of basis elements (columns of G / rows of H).
    num_frames : number of context frames.
    config : None, a dict of CHCNMFConfig field names, or a CHCNMFConfig.
    reconstruct : callable (W, H) -> V_hat computing the convolutive reconstruction.
    hull_init : callable (V, num_basis_elems) -> S, used when S_init is not given.
    rng : numpy Generator or seed for the random initial G and H.
    show_progress : show a progress bar and log the cost of every iteration.

    Returns
    -------
    W : m-by-num_basis_elems-by-num_frames basis tensor, W = S*G.
    H : num_basis_elems-by-n non-negative encoding matrix.
    S : m-by-p matrix of points on the convex hull of V.
    G : p-by-num_basis_elems-by-num_frames non-negative tensor of convex combinations.
    cost : value of the cost function before the first and after each iteration.
    """
    if num_basis_elems < 1 or num_frames < 1:
        raise ValueError("num_basis_elems and num_frames must be positive")
    config = as_config(config)
    rng = np.random.default_rng(rng)
    if show_progress and logger.getEffectiveLevel() > logging.INFO:
        logger.setLevel(logging.INFO)

    V = np.asarray(V, dtype=float)
    if V.ndim == 1:
        V = V[np.newaxis, :]
    m, n = V.shape

    # Convex hull points
    if config.S_init is None:
        S = np.array(hull_init(V, num_basis_elems), dtype=float)
    else:
        S = np.array(config.S_init, dtype=float)
    if S.ndim != 2 or S.shape[0] != m:
        raise ValueError(f"S has shape {S.shape}, expected ({m}, p)")
    num_points = S.shape[1]
    logger.debug('Using %s convex hull points' % num_points)

    # Convex combination tensor
    if config.G_init is None:
        G = init_G(num_points, num_basis_elems, num_frames, rng)
    else:
        G = np.array(config.G_init, dtype=float)
        if G.ndim == 2:
            G = G[:, :, np.newaxis]
        _check_shape('G_init', G, (num_points, num_basis_elems, num_frames))

    # Encoding matrix
    if config.H_init is None:
        H = init_H(num_basis_elems, n, rng)
    else:
        H = np.array(config.H_init, dtype=float)
        _check_shape('H_init', H, (num_basis_elems, n))

    # (S_V_pos, S_V_neg, S_S_pos, S_S_neg), fixed for the whole run
    splits = split_pos_neg(S.T @ V) + split_pos_neg(S.T @ S)
    W = build_basis(S, G)

    cost = np.zeros(config.maxiter + 1)
    cost[0] = reconstruction_cost(V, reconstruct(W, H))

    G_prev = G
    warned = False
    iterations = range(1, config.maxiter + 1)
    if show_progress:
        iterations = tqdm.tqdm(iterations)
    for it in iterations:
        if not config.G_fixed:
            G = _update_G(G_prev, H, S, splits, config.G_sparsity, W)

        if not config.H_fixed:
            H = _update_H(G, H, splits, config.H_sparsity)

        cost[it] = reconstruction_cost(V, reconstruct(W, H))
        if show_progress:
            logger.info('Cost: %s (%s/%s)' % (cost[it], it, config.maxiter))
        else:
            logger.debug('Cost: %s (%s/%s)' % (cost[it], it, config.maxiter))
        if not np.isfinite(cost[it]) and not warned:
            logger.warning('Cost is not finite at iteration %s, check for zero columns in G or H' % it)
            warned = True

        # Stop iterations if change in cost function less than the tolerance
        if it > 1 and cost[it] < cost[it-1] and cost[it-1] - cost[it] < config.tolerance:
            cost = cost[:it+1]
            logger.info('Converged after %s iterations' % it)
            break

        G_prev = G

    return W, H, S, G, cost
