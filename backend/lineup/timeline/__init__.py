"""Client-side timeline state: board, segments, viewport, mutations, reorder and search."""
