"""Core generation and animation primitives for spritefield.

Modules:
- seeded: seed hashing + counter-based random streams
- colors: hex/HSL conversion and seeded colour jitter
- modes: enums for every mode set, blend selection
- state: ParameterState and its numeric domains
- layout: seed + state -> PreparedComposition
- motion: the ten trajectories + animation clock
- render: composition -> PIL frame
- postfx: image-space filters and PostFXChain
- controller: CompositionController (mutation API + frame loop)
"""
