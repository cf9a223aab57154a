# ---
# jupyter:
#   jupytext:
#     text_representation:
#       extension: .py
#       format_name: percent
#       format_version: '1.3'
#   kernelspec:
#     display_name: Python 3
#     language: python
#     name: python3
# ---

# %% [markdown]
# # 03 — Overconstrained Corners and Tied Meshes
#
# Two independently numbered spring chains are glued at an interface
# with a `TieProblem`.  Both a support and a tie then act on the same
# node, which is an overconstraint: the same dof appears in two
# constraint problems.
#
# The overconstraint handler decides what happens:
#
# | Handler   | Behaviour                                     |
# |-----------|-----------------------------------------------|
# | `strict`  | Accept identical constraints, reject others   |
# | `first`   | Keep the earlier constraint                   |
# | `last`    | Keep the later constraint                     |
# | `average` | Average proportional constraints              |

# %%
import numpy as np
from pyfemsolve import boundaries, physics, solvers
from pyfemsolve.errors import OverconstraintError
from pyfemsolve.utils import setup_logging

setup_logging("INFO")


def spring_chain(n):
    K = np.zeros((n, n))
    for e in range(n - 1):
        K[e:e + 2, e:e + 2] += [[1.0, -1.0], [-1.0, 1.0]]
    return K


# %% [markdown]
# ## 1. Two Tied Segments
#
# Segment A owns dofs 0-2, segment B owns dofs 3-5.  Dof 3 is tied to
# dof 2.

# %%
def build(handler=None):
    segment_a = physics.MatrixProblem("A", spring_chain(3), np.zeros(3), dofs=[0, 1, 2])
    segment_b = physics.MatrixProblem("B", spring_chain(3), np.zeros(3), dofs=[3, 4, 5])
    supports = boundaries.DirichletProblem("supports", dofs=[0, 3, 5], values=[0.0, 0.5, 1.0])
    tie = boundaries.TieProblem("interface", pairs=[(3, 2)], overconstraint_handler=handler)
    return solvers.Solver(
        "tied chains",
        problems=[segment_a, segment_b, supports, tie],
        is_linear_system=True,
    )


# %% [markdown]
# ## 2. Strict Handling
#
# The support row $u_3 = 0.5$ and the tie row $u_3 - u_2 = 0$ are
# different equations, so the strict policy refuses to guess.

# %%
try:
    build().solve()
except OverconstraintError as exc:
    print(f"Rejected: {exc} (dofs {exc.dofs})")

# %% [markdown]
# ## 3. Explicit Policies

# %%
for handler in ("first", "last"):
    solver = build(handler)
    solver.solve()
    print(f"{handler:>6}: u = {np.round(solver.u, 4)}")

# %% [markdown]
# ## 4. Custom Handler
#
# Any callable with the signature `(context, accumulated, incoming)`
# can be used.  This one keeps the support and logs the nodes.

# %%
def keep_support(context, accumulated, incoming):
    print(f"{context.problem.name}: nodes {context.nodes.tolist()} overconstrained")
    incoming.drop_rows(context.dofs)


solver = build(keep_support)
solver.solve()
print(f"custom: u = {np.round(solver.u, 4)}")

# %% [markdown]
# ## Key Takeaways
#
# - Overconstraints are detected on the merged constraint rows, in the
#   order the problems were added to the solver.
# - The default is strict: silent loss of a constraint is never the
#   default behaviour.
