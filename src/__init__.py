"""Heat Overlay: click-density heatmaps over a background image.

This package contains the intensity engine that turns sparse normalized
interaction points into a coloured RGBA overlay, and the interaction layer
that lets a user place and remove those points by tapping or clicking.

Architecture layers (strict one-way dependency):
    scripts/ → src/{interaction,heatmap_engine}/ → src/utils/

Key invariants:
    - Points live in normalized [0,100]² space, integers only
    - Device coordinates exist only at the interaction boundary
    - Every render allocates fresh grids/buffers; nothing is carried over
    - YAML-only configs, validated by pydantic
    - Rendering never raises to the caller: heatmap, dots, or blank
"""

__version__ = "1.4.0"
