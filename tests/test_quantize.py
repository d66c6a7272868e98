"""Tests for band palette quantisation."""

import warnings

import numpy as np

from qpb.colour_convert import rgb_to_lab
from qpb.palette_data import cycled_default_lab, pinned_prefix_lab
from qpb.quantize import (
    build_band_palette,
    initial_centroids,
    kmeans_palette,
    unique_colours,
)


def test_unique_colours_first_seen_order_within_epsilon():
    a = np.array([10.0, 1.0, 1.0])
    b = np.array([60.0, -5.0, 20.0])
    pixels = np.stack([b, a, a, a + 1e-3, b + 0.02])
    out = unique_colours(pixels, 1e-4)
    np.testing.assert_array_equal(out, np.stack([b, a, b + 0.02]))


def test_unique_colours_merges_across_grid_cells():
    pixels = np.array([[0.00995, 0.0, 0.0], [0.01005, 0.0, 0.0]])
    out = unique_colours(pixels, 1e-4)
    assert out.shape == (1, 3)
    np.testing.assert_array_equal(out[0], pixels[0])


def test_unique_colours_tiny_epsilon_keeps_grid_keys_finite(rng):
    pixels = np.column_stack(
        [rng.uniform(0, 100, 3000), rng.uniform(-128, 127, (3000, 2))]
    )
    pixels[5] = pixels[2]
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        out = unique_colours(pixels, 1e-300)
    assert out.shape == (2999, 3)
    np.testing.assert_array_equal(out[:5], pixels[:5])


def test_unique_colours_empty():
    assert unique_colours(np.zeros((0, 3)), 1e-4).shape == (0, 3)


def test_initial_centroids_pinned_prefix_then_samples(rng):
    colours = rgb_to_lab(np.array([[255, 0, 0], [0, 255, 0], [9, 9, 9]], dtype=np.uint8))
    centroids = initial_centroids(colours, 48, rng)
    assert centroids.shape == (64, 3)
    np.testing.assert_array_equal(centroids[:48], pinned_prefix_lab(48))
    for row in centroids[48:]:
        assert any(np.array_equal(row, c) for c in colours)


def test_initial_centroids_all_pinned_ignores_content(rng):
    colours = rgb_to_lab(np.array([[255, 0, 0]], dtype=np.uint8))
    state = rng.bit_generator.state
    centroids = initial_centroids(colours, 64, rng)
    np.testing.assert_array_equal(centroids, cycled_default_lab(0, 64))
    assert rng.bit_generator.state == state


def test_initial_centroids_without_colours_continue_default(rng):
    centroids = initial_centroids(np.zeros((0, 3)), 40, rng)
    np.testing.assert_array_equal(centroids, cycled_default_lab(0, 64))


def test_kmeans_updates_only_free_centroids():
    colours = np.array(
        [[10.0, 0, 0], [12.0, 0, 0], [80.0, 0, 0], [84.0, 0, 0], [50.0, 1.0, 0]]
    )
    seeds = np.array([[50.0, 0, 0], [10.0, 0, 0], [80.0, 0, 0]])
    result = kmeans_palette(colours, seeds, pinned=1, epsilon=1e-4, max_iterations=100)
    np.testing.assert_allclose(
        result.centroids, [[50.0, 0, 0], [11.0, 0, 0], [82.0, 0, 0]]
    )
    assert result.converged
    assert result.iterations == 2
    np.testing.assert_array_equal(seeds[1], [10.0, 0, 0])


def test_kmeans_empty_cluster_keeps_centroid():
    colours = np.array([[10.0, 0, 0], [20.0, 0, 0]])
    seeds = np.array([[10.0, 0, 0], [90.0, 0, 0], [200.0, 0, 0]])
    result = kmeans_palette(colours, seeds, pinned=0)
    assert np.all(np.isfinite(result.centroids))
    np.testing.assert_allclose(
        result.centroids, [[15.0, 0, 0], [90.0, 0, 0], [200.0, 0, 0]]
    )


def test_kmeans_ties_go_to_lowest_centroid():
    colours = np.array([[5.0, 0, 0], [7.0, 0, 0]])
    seeds = np.array([[5.0, 0, 0], [5.0, 0, 0]])
    result = kmeans_palette(colours, seeds, pinned=0, max_iterations=1)
    np.testing.assert_allclose(result.centroids, [[6.0, 0, 0], [5.0, 0, 0]])


def test_kmeans_iteration_cap():
    colours = np.array([[10.0, 0, 0], [12.0, 0, 0]])
    seeds = np.array([[10.0, 0, 0]])
    result = kmeans_palette(colours, seeds, pinned=0, max_iterations=1)
    assert result.iterations == 1
    assert not result.converged
    np.testing.assert_allclose(result.centroids, [[11.0, 0, 0]])


def test_build_band_palette_is_reproducible(striped_image):
    lab = rgb_to_lab(striped_image)
    rows = np.arange(9, 12)
    first = build_band_palette(lab, rows, 16, np.random.default_rng(3))
    second = build_band_palette(lab, rows, 16, np.random.default_rng(3))
    np.testing.assert_array_equal(first.palette, second.palette)
    assert first.palette.shape == (64, 3)
    np.testing.assert_array_equal(first.palette[:16], pinned_prefix_lab(16))
    assert first.colours == 30


def test_build_band_palette_single_colour_band(red_blue_8x2, rng):
    lab = rgb_to_lab(red_blue_8x2)
    result = build_band_palette(lab, np.array([0]), 62, rng)
    assert result.colours == 1
    np.testing.assert_array_equal(result.palette[62:], np.repeat(lab[0, :1], 2, axis=0))
    assert result.converged


def test_build_band_palette_empty_band(rng):
    lab = rgb_to_lab(np.zeros((2, 2, 3), dtype=np.uint8))
    result = build_band_palette(lab, np.array([], dtype=np.intp), 16, rng)
    assert result.colours == 0
    np.testing.assert_array_equal(result.palette, cycled_default_lab(0, 64))
