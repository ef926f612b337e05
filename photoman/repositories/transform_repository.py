# repositories/transform_repository.py
import torch
import torch.nn.functional as F

from ..models.tensor_engine import TensorScope

# Sobel kernels (horizontal, vertical = transpose)
SOBEL_X = [[-1.0, 0.0, 1.0],
           [-2.0, 0.0, 2.0],
           [-1.0, 0.0, 1.0]]
SOBEL_Y = [list(row) for row in zip(*SOBEL_X)]

PADDING_MODES = {"reflect": "reflect", "edge": "replicate", "zero": "constant"}


class TransformRepository:
    """
    Tensor math for the effects.

    • Input/output tensors are (H, W, 4) uint8 RGBA.
    • Every intermediate goes through scope.track() so the caller's
      TensorScope releases it.
    """

    # ---------- private helpers ----------
    @staticmethod
    def _finite(values: torch.Tensor) -> torch.Tensor:
        if not bool(torch.isfinite(values).all()):
            raise ValueError("non-finite values in intermediate result")
        return values

    @staticmethod
    def _split(scope: TensorScope, pixels: torch.Tensor):
        """uint8 RGBA → (RGB normalized to [0,1], alpha uint8)."""
        rgb = scope.track(pixels[..., :3].to(torch.float32) / 255.0)
        alpha = pixels[..., 3:]
        return rgb, alpha

    @staticmethod
    def _merge(scope: TensorScope, rgb01: torch.Tensor, alpha: torch.Tensor) -> torch.Tensor:
        """[0,1] RGB + uint8 alpha → uint8 RGBA, clamped before the cast."""
        rgb01 = TransformRepository._finite(rgb01)
        rgb_u8 = scope.track((rgb01.clamp(0.0, 1.0) * 255.0).round().to(torch.uint8))
        return torch.cat([rgb_u8, alpha], dim=-1)

    # ---------- public API ----------
    def grayscale(self, scope: TensorScope, pixels: torch.Tensor) -> torch.Tensor:
        rgb = scope.track(pixels[..., :3].to(torch.float32))
        mean = scope.track(rgb.mean(dim=-1, keepdim=True).round().clamp(0, 255).to(torch.uint8))
        return torch.cat([mean, mean, mean, pixels[..., 3:]], dim=-1)

    def brightness(self, scope: TensorScope, pixels: torch.Tensor, factor: float) -> torch.Tensor:
        rgb, alpha = self._split(scope, pixels)
        scaled = scope.track(rgb * factor)
        return self._merge(scope, scaled, alpha)

    def contrast(self, scope: TensorScope, pixels: torch.Tensor, factor: float) -> torch.Tensor:
        rgb, alpha = self._split(scope, pixels)
        # one mean over every RGB sample of the image, not per channel
        mean = scope.track(rgb.mean())
        stretched = scope.track((rgb - mean) * factor + mean)
        return self._merge(scope, stretched, alpha)

    def invert(self, scope: TensorScope, pixels: torch.Tensor) -> torch.Tensor:
        rgb, alpha = self._split(scope, pixels)
        return self._merge(scope, scope.track(1.0 - rgb), alpha)

    def sobel_magnitude(self, scope: TensorScope, pixels: torch.Tensor, padding: str = "reflect") -> torch.Tensor:
        """
        Gradient magnitude of the [0,1] grayscale image, shape (H, W) float32.

        padding : "reflect" mirrors the image about its border row/column,
                  "edge" repeats the border samples, "zero" treats samples
                  outside the image as 0. Output is always H x W.
        """
        gray = scope.track(pixels[..., :3].to(torch.float32).mean(dim=-1) / 255.0)
        gray = scope.track(gray.unsqueeze(0).unsqueeze(0))  # (1,1,H,W)
        mode = PADDING_MODES[padding]
        if mode == "reflect" and min(gray.shape[-2:]) < 2:
            mode = "replicate"  # a 1-pixel side mirrors onto itself
        padded = scope.track(F.pad(gray, (1, 1, 1, 1), mode=mode))

        kernels = scope.track(
            torch.tensor([[SOBEL_X], [SOBEL_Y]], dtype=torch.float32, device=pixels.device)
        )  # (2,1,3,3)
        grads = scope.track(F.conv2d(padded, kernels))  # (1,2,H,W)
        gx, gy = grads[0, 0], grads[0, 1]
        return scope.track(torch.sqrt(gx * gx + gy * gy))

    def edge_detection(self, scope: TensorScope, pixels: torch.Tensor, padding: str = "reflect") -> torch.Tensor:
        magnitude = self._finite(self.sobel_magnitude(scope, pixels, padding))
        edges = scope.track((magnitude * 255.0).clamp(0, 255).round().to(torch.uint8).unsqueeze(-1))
        opaque = scope.track(torch.full_like(edges, 255))
        return torch.cat([edges, edges, edges, opaque], dim=-1)
