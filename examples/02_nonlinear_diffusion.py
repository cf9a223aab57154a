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
# # 02 — Nonlinear Diffusion with Load Stepping
#
# Steady diffusion along a rod whose conductivity grows with the
# solution:
#
# $$-\frac{d}{dx}\left(k(u)\frac{du}{dx}\right) = q, \qquad
#   k(u) = k_0 (1 + \beta u)$$
#
# The Newton iteration uses the consistent tangent, so the norm of
# the increment drops quadratically.  The source is ramped up over
# four load steps.
#
# **Problems**: `pyfemsolve.physics.NonlinearDiffusion1D`

# %%
import numpy as np
from pyfemsolve import boundaries, physics, solvers, time, visualization
from pyfemsolve.utils import setup_logging

setup_logging("INFO")

# %% [markdown]
# ## 1. Rod and Material
#
# | Property          | Value |
# |-------------------|-------|
# | Length            | 1     |
# | Elements          | 20    |
# | $k_0$             | 1     |
# | $\beta$           | 1     |
# | Final source $q$  | 10    |

# %%
x = np.linspace(0.0, 1.0, 21)
q_final = 10.0
rod = physics.NonlinearDiffusion1D(
    "rod", x, k0=1.0, beta=1.0, source=lambda t: q_final * t,
)
ends = boundaries.DirichletProblem("ends", dofs=[0, x.size - 1], values=0.0)

# %% [markdown]
# ## 2. Solve in Load Steps

# %%
solver = solvers.Solver(
    "nonlinear rod",
    problems=[rod, ends],
    max_iterations=20,
    convergence_tolerance=1e-10,
)
stepper = time.Stepper(t_end=1.0, dt=0.25)
verdicts = solver.solve_steps(stepper)
print(f"Converged steps: {verdicts}")
print(f"Iterations in the last step: {solver.iteration}")

# %% [markdown]
# ## 3. Compare with the Closed-Form Solution
#
# The Kirchhoff transform $w = u + \beta u^2 / 2$ turns the problem
# into $-w'' = q / k_0$, so
# $u = \left(\sqrt{1 + 2 \beta w} - 1\right) / \beta$ with
# $w = q x (1 - x) / (2 k_0)$.

# %%
w = q_final * x * (1.0 - x) / 2.0
u_exact = np.sqrt(1.0 + 2.0 * w) - 1.0
print(f"max |u - u_exact| = {np.abs(rod.u - u_exact).max():.2e}")

# %% [markdown]
# ## 4. Profile and Convergence History

# %%
import matplotlib.pyplot as plt

fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(10, 4))
ax1.plot(x, rod.u, "o", label="FE")
ax1.plot(x, u_exact, "-", label="exact")
ax1.set_xlabel("x")
ax1.set_ylabel("u")
ax1.legend()
ax1.grid(True, alpha=0.3)
visualization.plot_convergence(solver, ax=ax2, title="Last load step")
plt.tight_layout()
plt.show()

# %% [markdown]
# ## Key Takeaways
#
# - Each load step starts from the previous solution, which keeps the
#   Newton iteration inside its convergence radius.
# - `solver.norms` holds the increment norm of every iteration of the
#   last solve.
