"""
Visualization module: maps and diagnostic plots saved as PNG.
"""

from pathlib import Path

import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from splot.esda import moran_scatterplot, lisa_cluster

from . import config


def _save(fig, path, dpi=None):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=dpi or config.FIGURE_DPI, bbox_inches='tight')
    plt.close(fig)
    return path


def plot_choropleth(gdf, column, title, path, cmap='viridis'):
    """Choropleth of one column; areas without data in light grey."""
    fig, ax = plt.subplots(figsize=(10, 8))
    gdf.plot(column=column, cmap=cmap, ax=ax, edgecolor='white', linewidth=0.2,
             legend=True, legend_kwds={'shrink': 0.6},
             missing_kwds={'color': 'lightgrey', 'label': 'No data'})
    ax.set_title(title, fontsize=12, fontweight='bold')
    ax.set_axis_off()
    return _save(fig, path)


def plot_moran_scatter(moran, title, path):
    fig, ax = plt.subplots(figsize=(8, 8))
    moran_scatterplot(moran, ax=ax)
    ax.set_title(title, fontsize=12, fontweight='bold')
    return _save(fig, path)


def plot_lisa_clusters(lisa, gdf, title, path, p=None):
    fig, ax = plt.subplots(figsize=(12, 10))
    lisa_cluster(lisa, gdf, p=p or config.SIGNIFICANCE_LEVEL, ax=ax, legend=True)
    ax.set_title(title, fontsize=12, fontweight='bold')
    return _save(fig, path)


def plot_morans_postfit(morans_postfit, path):
    """Bar chart of residual Moran's I per model (lower is better)."""
    fig, ax = plt.subplots(figsize=(10, 6))
    models = morans_postfit['model'].values
    values = morans_postfit['morans_I'].values
    pvals = morans_postfit['p_norm'].values
    colors = sns.color_palette('tab10', len(models))

    bars = ax.bar(models, values, color=colors, alpha=0.7, edgecolor='black', linewidth=1.5)
    ax.axhline(y=0, color='black', linestyle='--', linewidth=1, alpha=0.5)
    ax.set_ylabel("Moran's I", fontsize=12, fontweight='bold')
    ax.set_xlabel('Model', fontsize=12, fontweight='bold')
    ax.set_title("Spatial Autocorrelation in Residuals (Post-Fit)\nLower is Better",
                 fontsize=13, fontweight='bold')
    ax.grid(axis='y', alpha=0.3)

    for bar, val, pval in zip(bars, values, pvals):
        p_text = "p<0.001" if pval < 0.001 else f"p={pval:.3f}"
        ax.text(bar.get_x() + bar.get_width() / 2., bar.get_height(),
                f'{val:.4f}\n{p_text}', ha='center', va='bottom', fontsize=10, fontweight='bold')

    return _save(fig, path)


def plot_residual_histograms(residuals_map, path, bins=30):
    """One histogram panel per model; shared x-range."""
    valid = {k: np.asarray(v, dtype=float) for k, v in residuals_map.items()
             if v is not None and not np.all(np.isnan(v))}
    if not valid:
        raise ValueError("No residuals to plot")

    x_min = min(float(np.min(r)) for r in valid.values())
    x_max = max(float(np.max(r)) for r in valid.values())
    colors = sns.color_palette('tab10', len(valid))

    fig, axes = plt.subplots(1, len(valid), figsize=(4.5 * len(valid), 4), squeeze=False)
    for ax, (label, residuals), color in zip(axes[0], valid.items(), colors):
        ax.hist(residuals, bins=bins, color=color, alpha=0.7, edgecolor='black')
        ax.axvline(x=0, color='red', linestyle='--', linewidth=2)
        ax.set_xlabel('Residuals', fontsize=11)
        ax.set_ylabel('Frequency', fontsize=11)
        ax.set_title(f'{label}\n(mean={residuals.mean():.2f}, std={residuals.std():.2f})',
                     fontsize=11, fontweight='bold')
        ax.grid(alpha=0.3)
        ax.set_xlim(x_min, x_max)

    fig.suptitle('Residual Distributions by Model', fontsize=13, fontweight='bold', y=1.02)
    fig.tight_layout()
    return _save(fig, path)


def plot_gwr_coefficients(gdf_gwr, names, out_dir, prefix='gwr_coef'):
    """
    One map per local coefficient; non-significant areas drawn in grey.

    Returns:
        list of saved paths
    """
    out_dir = Path(out_dir)
    paths = []
    for name in names:
        coef_col = f'{name}_coef'
        sig_col = f'{name}_sig'

        fig, ax = plt.subplots(figsize=(10, 8))
        gdf_gwr.plot(ax=ax, color='#d9d9d9', edgecolor='white', linewidth=0.2)
        sig = gdf_gwr[gdf_gwr[sig_col]] if sig_col in gdf_gwr.columns else gdf_gwr
        if len(sig) > 0:
            vmax = float(np.nanmax(np.abs(gdf_gwr[coef_col])))
            sig.plot(column=coef_col, cmap='RdBu_r', vmin=-vmax, vmax=vmax, ax=ax,
                     edgecolor='white', linewidth=0.2, legend=True, legend_kwds={'shrink': 0.6})
        ax.set_title(f'GWR local coefficient: {name}\n(grey = not significant)',
                     fontsize=12, fontweight='bold')
        ax.set_axis_off()
        paths.append(_save(fig, out_dir / f'{prefix}_{name}.png'))
    return paths


def plot_coefficient_histograms(gdf_gwr, names, path, global_coefs=None):
    """Histograms of local coefficients; dashed line at the global estimate if given."""
    fig, axes = plt.subplots(1, len(names), figsize=(4 * len(names), 3.5), squeeze=False)
    for ax, name in zip(axes[0], names):
        values = gdf_gwr[f'{name}_coef']
        sns.histplot(values, bins=25, ax=ax, color='steelblue')
        ax.axvline(values.mean(), color='red', linestyle='--', label=f'Mean: {values.mean():.3f}')
        if global_coefs is not None and name in global_coefs:
            ax.axvline(global_coefs[name], color='black', linestyle=':', label='Global')
        ax.set_title(name, fontsize=11, fontweight='bold')
        ax.set_xlabel('Coefficient value')
        ax.legend(fontsize=8)
    fig.tight_layout()
    return _save(fig, path)


def plot_k_scan(scan, path):
    """Elbow (inertia) and silhouette score versus k."""
    fig, ax1 = plt.subplots(figsize=(8, 5))
    ax1.plot(scan['k'], scan['inertia'], marker='o', color='tab:blue')
    ax1.set_xlabel('Number of clusters k')
    ax1.set_ylabel('Inertia', color='tab:blue')
    ax2 = ax1.twinx()
    ax2.plot(scan['k'], scan['silhouette'], marker='s', color='tab:orange')
    ax2.set_ylabel('Silhouette score', color='tab:orange')
    ax1.set_title('K-means on GWR coefficients: elbow and silhouette', fontweight='bold')
    ax1.grid(alpha=0.3)
    return _save(fig, path)


def plot_clusters(gdf_clustered, path, column='cluster'):
    fig, ax = plt.subplots(figsize=(10, 8))
    gdf_clustered.plot(column=column, categorical=True, cmap='tab10', ax=ax,
                       edgecolor='white', linewidth=0.2, legend=True)
    ax.set_title('Submarkets from GWR coefficients (k-means)', fontsize=12, fontweight='bold')
    ax.set_axis_off()
    return _save(fig, path)


def plot_cluster_profiles(profiles, coef_cols, path):
    """Heatmap of mean local coefficient per cluster."""
    data = profiles.set_index('cluster')[list(coef_cols)]
    fig, ax = plt.subplots(figsize=(1.6 * len(coef_cols) + 3, 0.6 * len(data) + 2))
    sns.heatmap(data, annot=True, fmt='.2f', cmap='RdBu_r', center=0, ax=ax)
    ax.set_title('Mean local coefficient by cluster', fontweight='bold')
    return _save(fig, path)
