"""
Random AI plugin package.

Components:
- ai/random_ai: the agent interface and the uniform random agent
- mcts/mcts_factory: explainable MCTS (UCB1/GRAVE selection, uniform/MAST/NST playouts) built from JSON
- pns: proof-number search agent
- registry: explicit AI registry keyed by display name
- games/context: python-chess backed game definition and match context
- match: host loop that seats AIs and drives a match
- server/launch: Flask play server and the start-up routine that registers AIs and runs it
"""
# Package exports are intentionally minimal; import modules directly as needed.
