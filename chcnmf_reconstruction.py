# Convex Hull-CNMF reconstructions
"""
Pipeline:
1. Generate synthetic mixed-sign convolutive mixtures
2. Perform CH-CNMF (for different number of context frames)
3. Measure reconstruction performance and dump
"""

import json
from datetime import datetime

import numpy as np
import tqdm

from chcnmf_models import chcnmf
from models import torch_reconstruct
from utils import reconstruct_from_decomposition, synthetic_convolutive_mix

# Number of experiments
N = 20
rank = 3
true_frames = 4
sigma2 = 0.01
maxiter = 200
list_metrics = ['msen','snr','final_cost','num_iters','torch_recon_err']
list_T = np.array([1,2,4,8])
eps = 1.0e-6


def run_experiments(N = N, list_T = list_T, rank = rank, seed = None):
    rng = np.random.default_rng(seed)

    model_results = {(str)(k):{j:[] for j in list_metrics} for k in list_T}
    model_results["Number_runs"] = N
    model_results["Algorithm"] = 'chcnmf'
    model_results["rank"] = rank
    model_results["true_frames"] = true_frames
    model_results["sigma2"] = sigma2
    model_results["list_T"] = list_T.tolist()

    for T in tqdm.tqdm(list_T):
        for e in tqdm.trange(N):
            V,_,_ = synthetic_convolutive_mix(num_basis_elems = rank, num_frames = true_frames, sigma2 = sigma2, rng = rng)

            W,H,S,G,cost = chcnmf(V, rank, int(T), {'maxiter': maxiter, 'tolerance': 1e-6}, rng = rng)
            vhat = reconstruct_from_decomposition(W,H)
            vhat_torch = torch_reconstruct(W,H)

            # Compute metrics
            model_results[str(T)]['msen'].append(float(np.mean((vhat - V)**2)/np.mean(V**2 + eps)))
            model_results[str(T)]['snr'].append(float(10*np.log10(np.sum(V**2)/(np.sum((V - vhat)**2) + eps))))
            model_results[str(T)]['final_cost'].append(float(cost[-1]))
            model_results[str(T)]['num_iters'].append(int(cost.shape[0] - 1))
            model_results[str(T)]['torch_recon_err'].append(float(np.max(np.abs(vhat - vhat_torch))))

    return model_results


if __name__ == '__main__':
    now = datetime.now()
    model_results = run_experiments()

    dir_pth_save = './'

    results_file = dir_pth_save + str(now) + '_chcnmf_reconstruction.json'

    with open(results_file, 'w') as fp:
        json.dump(model_results, fp)
