from alestep.operators.convection_diffusion_operator import ConvectionDiffusionOperator
from alestep.operators.mass_operator import MassOperator
