"""
PyTorch Models;
- Convolutive reconstruction
"""


import torch


class torch_convolutive_reconstruction(torch.nn.Module):
    """
    Convolutive reconstruction sum_t W[:,:,t] @ shift_right(H,t) using 1d conv with the basis tensor as kernel
    """
    def __init__(self,W):
        super( torch_convolutive_reconstruction, self).__init__()
        W = torch.as_tensor(W,dtype = torch.float64)
        self.num_frames = W.shape[-1]
        # conv1d is a cross-correlation, flip the frames so kernel tap k holds shift num_frames-1-k
        self.kernel = torch.nn.Parameter(torch.flip(W,(2,)),requires_grad = False)

    def forward(self,H):
        # Left padding with num_frames-1 zeros keeps the output length equal to n
        x = torch.nn.functional.pad(H.unsqueeze(0),(self.num_frames - 1,0))
        x = torch.nn.functional.conv1d(x, self.kernel, stride=1, padding=0)
        return x.squeeze(0)


def torch_reconstruct(W,H):
    """
    Reconstructor with the same contract as utils.reconstruct_from_decomposition (numpy in, numpy out)
    """
    recon = torch_convolutive_reconstruction(W)
    with torch.no_grad():
        V_hat = recon(torch.as_tensor(H,dtype = torch.float64))
    return V_hat.numpy()
