from enrichsim.facilities.base import SimulationFacility
