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
# # 01 — Linear Bar with Prescribed End Values
#
# A chain of unit springs is held at $u = 0$ on the left and pulled
# to $u = 1$ on the right.  The end values are enforced with Lagrange
# multipliers, so the solver works on the saddle-point system
#
# $$\begin{bmatrix} K & C_1^T \\ C_2 & D \end{bmatrix}
#   \begin{bmatrix} u \\ \lambda \end{bmatrix}
#   = \begin{bmatrix} f \\ g \end{bmatrix}$$
#
# and the multipliers $\lambda$ are the reaction forces at the supports.
#
# **Problems**: `pyfemsolve.physics.MatrixProblem`,
# `pyfemsolve.boundaries.DirichletProblem`

# %%
import numpy as np
from pyfemsolve import boundaries, physics, solvers
from pyfemsolve.utils import setup_logging

setup_logging("INFO")

# %% [markdown]
# ## 1. Stiffness Matrix
#
# Five nodes, four springs with stiffness $k = 2$.

# %%
n_nodes = 5
k = 2.0
K = np.zeros((n_nodes, n_nodes))
for e in range(n_nodes - 1):
    K[e:e + 2, e:e + 2] += k * np.array([[1.0, -1.0], [-1.0, 1.0]])

bar = physics.MatrixProblem("bar", K, f=np.zeros(n_nodes))
print(bar)

# %% [markdown]
# ## 2. Boundary Conditions
#
# | Node | Condition |
# |------|-----------|
# | 0    | $u = 0$   |
# | 4    | $u = 1$   |

# %%
ends = boundaries.DirichletProblem("ends", dofs=[0, n_nodes - 1], values=[0.0, 1.0])

# %% [markdown]
# ## 3. Solve
#
# The system is linear, so one iteration is enough.

# %%
solver = solvers.Solver("constrained bar", is_linear_system=True)
solver.add(bar)
solver.add(ends)
solver.solve()

print(f"Displacements: {bar.u}")
print(f"Reactions:     {ends.la}")

# %% [markdown]
# ## 4. Check
#
# The displacement is linear along the bar and the two reactions
# balance, $\lambda_0 = -\lambda_4 = k / (n - 1)$.

# %%
np.testing.assert_allclose(bar.u, np.linspace(0.0, 1.0, n_nodes), atol=1e-12)
np.testing.assert_allclose(ends.la, [k / (n_nodes - 1), -k / (n_nodes - 1)], atol=1e-12)

# %% [markdown]
# ## Key Takeaways
#
# - Constraints never modify the stiffness matrix; they add rows and
#   columns to the global system.
# - The multipliers come for free and are the support reactions.
