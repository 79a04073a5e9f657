"""用 mlprims 原语拼出的极简 PCA 示例。"""

from __future__ import annotations

import logging

import numpy as np

import mlprims as mp


def make_data(n_samples: int, n_features: int, rng) -> np.ndarray:
    latent = rng.standard_normal((n_samples, 2))
    mixing = rng.standard_normal((2, n_features))
    noise = 0.1 * rng.standard_normal((n_samples, n_features))
    return latent @ mixing + noise + rng.uniform(-5.0, 5.0, size=n_features)


def pca(x: np.ndarray, n_components: int):
    n_samples, n_features = x.shape
    data = np.array(x, dtype=np.float64, order="C")

    # 中心化：行主序下按列减去均值
    mean = data.mean(axis=0)
    mp.matrix_vector_binary_sub(data, mean, n_samples, n_features, True)

    cov = np.ascontiguousarray(data.T @ data / (n_samples - 1))
    eig_vals, eig_vecs = np.linalg.eigh(cov)
    order = np.argsort(eig_vals)[::-1][:n_components]
    # eigh 返回的特征向量按列存放，转成列主序缓冲区以便逐列翻转
    components = np.asfortranarray(eig_vecs[:, order])
    explained_var = np.ascontiguousarray(eig_vals[order])

    mp.sign_flip(components, n_features, n_components)

    explained_ratio = np.zeros_like(explained_var)
    mp.ratio(explained_var, explained_ratio)

    # 白化系数 1 / sqrt(var)，方差过小的主成分系数置 0
    scale = np.zeros_like(explained_var)
    mp.sqrt_scaled(explained_var, out=scale, clamp_negative_to_zero=True)
    mp.reciprocal(scale, clamp_small=True)

    return components, explained_var, explained_ratio, scale


def main():
    logging.basicConfig(level=logging.DEBUG)
    rng = np.random.default_rng(0)
    x = make_data(200, 5, rng)
    components, variance, ratio, scale = pca(x, n_components=3)

    print("components (columns):")
    print(np.round(components, 4))
    print(f"explained variance: {np.round(variance, 4)}")
    print(f"explained ratio:    {np.round(ratio, 4)}")
    print(f"whitening scale:    {np.round(scale, 4)}")


if __name__ == "__main__":
    main()
