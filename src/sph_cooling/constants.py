"""
Physical constants and fixed table parameters for the cooling solver.

All values are CGS. Abundance conventions follow the metallicity vector
layout used throughout the package:

    index 0 : total metal mass fraction Z
    index 1 : helium mass fraction Y
    index 2-10 : C, N, O, Ne, Mg, Si, S, Ca, Fe mass fractions
"""

import numpy as np

# Fundamental constants
BOLTZMANN = 1.380649e-16  # [erg/K]
PROTONMASS = 1.672621e-24  # [g]
ELECTRONMASS = 9.109e-28  # [g]
C_LIGHT = 2.99792458e10  # [cm/s]
SIGMA_SB = 5.670374e-5  # Stefan-Boltzmann [erg cm⁻² s⁻¹ K⁻⁴]
SIGMA_THOMSON = 6.652e-25  # [cm²]
EV_TO_ERG = 1.60184e-12
SECONDS_PER_YEAR = 3.15576e7

# Composition
HYDROGEN_MASSFRAC = 0.76
GAMMA = 5.0 / 3.0
GAMMA_MINUS1 = GAMMA - 1.0

# Rate table grid
NCOOLTAB = 2000
LOG_T_MAX = 9.0
LOG_T_MIN_DEFAULT = 1.0

# Density above which the ionizing background starts to be shielded [cm⁻³]
NH_SS = 0.0123

# Temperature of gas flagged as photo-ionized by local sources [K]
HII_REGION_TEMPERATURE = 1.0e4

# Element metallicity layout
NUM_METAL_SPECIES = 11
SOLAR_ABUNDANCES = np.array(
    [0.02, 0.28, 3.26e-3, 1.32e-3, 8.65e-3, 2.22e-3,
     9.31e-4, 1.08e-3, 6.44e-4, 1.01e-4, 1.73e-3],
    dtype=np.float64,
)
SOLAR_ABUNDANCES.flags.writeable = False

# Species metal-line tables: 41 density bins x 176 temperature bins,
# log nH in [-8, 0] and log T in [2, 9], one file per redshift bin.
METAL_TABLE_N_DENSITY = 41
METAL_TABLE_N_TEMPERATURE = 176
METAL_TABLE_LOG_NH_RANGE = (-8.0, 0.0)
METAL_TABLE_LOG_T_RANGE = (2.0, 9.0)
METAL_TABLE_N_SPECIES = NUM_METAL_SPECIES - 1
METAL_TABLE_N_REDSHIFT_BINS = 48

# UV background file
UV_TABLE_MAX_ROWS = 250
