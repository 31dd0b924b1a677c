from .chain import PointMassChain
from .forces import CentralGravity, UniformGravity, DeploymentFriction, no_friction, pointwise
from .constraints import InextensibleTension, SpringDamperTension, link_geometry
