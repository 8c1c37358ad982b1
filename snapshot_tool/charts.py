import os

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt


def plot_frequencies(frequencies, path, title, xlabel):
    keys = sorted(frequencies)
    counts = np.array([frequencies[k] for k in keys], dtype=float)
    positions = np.arange(len(keys))

    fig, ax = plt.subplots(figsize=(12, 6))
    ax.bar(positions, counts, color='skyblue')
    ax.set_xticks(positions)
    ax.set_xticklabels([str(k) for k in keys], rotation=45, ha='right')
    ax.set_xlabel(xlabel)
    ax.set_ylabel('Records')
    ax.set_title(title)

    if counts.sum() > 0:
        share = ax.twinx()
        share.plot(positions, np.cumsum(counts) / counts.sum() * 100, marker='o', color='green')
        share.set_ylabel('Cumulative %')
        share.set_ylim(0, 105)

    ax.grid(True, linestyle='--', alpha=0.7)
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)
    return path


def generate_charts(stats, plots_dir):
    os.makedirs(plots_dir, exist_ok=True)
    return [
        plot_frequencies(
            stats.json_chars_frequencies,
            os.path.join(plots_dir, 'json_chars_frequencies.png'),
            'Record JSON size (1KiB bins)',
            'JSON chars',
        ),
        plot_frequencies(
            stats.doi_chars_frequencies,
            os.path.join(plots_dir, 'doi_chars_frequencies.png'),
            'DOI length',
            'DOI chars',
        ),
    ]
