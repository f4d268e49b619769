import warnings
import logging
import pandas as pd
import pathlib as pa
import os
import json
import time

from simpy.core import Environment

from enrichsim.exchange import ResourceExchange
from enrichsim.facilities import SimulationFacility
from enrichsim.facilities.enrichment import Enrichment
from enrichsim.facilities.shipping_receiving import Sink, Source
from enrichsim.resources import Global_Index, add_recipe

class SimulationRun:
    """
    The SimulationRun class drives a fuel cycle built around one or more enrichment facilities.
    This class implements the functionality for loading the configuration file for the fuel cycle, executing the
    simulation period by period, and writing simulation results to an output file.

    Each period every facility is ticked, the resource exchange is resolved once (requests, bids,
    preferences, matching, trades), every facility is tocked and finally every facility store
    records its inventory.
    """
    def __init__(self, log_file: str | pa.Path = None):
        """Initialize the fuel cycle simulation object.

        Args:
            log_file (str or Path, optional): Path to the desired log file. Defaults to None.
        """
        self.env = Environment()
        self.global_index = Global_Index()
        self.exchange = ResourceExchange(self.env)
        self.facilities: dict[str, SimulationFacility] = {}
        self.facility_configs: dict[str, dict] = {}
        self.simulation_params: dict = {}

        if log_file:
            print('Logging enabled')
            logging.basicConfig(filename=log_file, filemode='w', level=logging.INFO)

    def write_results(self, fpath: str | pa.Path):
        """Save all simulation inventories, enrichment records and trades to a hdf5 store at fpath

        Args:
            fpath (str | Path): Path of output store location
        """
        warnings.simplefilter("ignore", category=pd.errors.PerformanceWarning)
        if isinstance(fpath, str):
            fpath = pa.Path(fpath)

        if fpath.suffix != '.h5':
            fpath = fpath.with_suffix('.h5')
            warnings.warn(f"Filetype should be h5; renaming ({fpath})", SyntaxWarning)

        with pd.HDFStore(fpath, mode='w') as store:
            for facility in self.facilities.values():
                store_dict = facility.dict_of_stores()
                for store_name, store_obj in store_dict.items():
                    df = store_obj.generate_inventory_table()
                    key = f"/{facility.name}/{store_name}"
                    store.put(key, df)
                    print(f"Saved {key} to {fpath}")

                    ins_and_outs_df = store_obj.generate_ins_and_outs_table()
                    key = f"/{facility.name}/{store_name}_ins_and_outs"
                    store.put(key, ins_and_outs_df)
                    print(f"Saved {key} to {fpath}")

                if isinstance(facility, Enrichment):
                    key = f"/{facility.name}/enrichments"
                    store.put(key, facility.generate_enrichment_table())
                    print(f"Saved {key} to {fpath}")

            store.put("/exchange/trades", self.generate_trade_table())
            print(f"Saved /exchange/trades to {fpath}")

    def generate_trade_table(self) -> pd.DataFrame:
        """Return a dataframe with one row per material delivered through the exchange"""
        return pd.DataFrame(self.exchange.history, columns=['week', 'commodity', 'supplier', 'requester', 'quantity'])

    def load_config(self, config_path: str | pa.Path):
        """Load the configuration file which defines the fuel cycle.

        The configuration file lists the facilities in the fuel cycle with their parameters, may add
        named recipes to the recipe library, and sets the simulation parameters (e.g. 'duration').

        Args:
            config_path (str | Path): Path to the config file to use

        Raises:
            NotImplementedError: If facility mentioned in configuration file is not implemented in the enrichsim package.
        """
        with open(config_path, 'r') as file:
            config = json.load(file)

        for recipe_name, isotopes in config.get('recipes', {}).items():
            add_recipe(recipe_name, isotopes)

        self.facilities = {}
        self.facility_configs = {}
        for facility_config in config['facilities']:
            facility_type = facility_config['type']
            name = facility_config['name']
            params = facility_config['parameters']
            self.facility_configs[name] = params

            if facility_type == 'Source':
                self.facilities[name] = Source(name, self.env, self.global_index, **params)
            elif facility_type == 'Sink':
                self.facilities[name] = Sink(name, self.env, self.global_index, **params)
            elif facility_type == 'Enrichment':
                self.facilities[name] = Enrichment(name, self.env, self.global_index, **params)
            else:
                raise NotImplementedError(f"No implemented facility matches {facility_type}")

        self.simulation_params = config.get('simulation_parameters', {})

    def _run_periods(self):
        """Simpy process stepping every facility through the phases of one period per timestep"""
        facilities = list(self.facilities.values())
        while True:
            for facility in facilities:
                facility.tick()
            self.exchange.resolve(facilities)
            for facility in facilities:
                facility.tock()
            for facility in facilities:
                for store in facility.dict_of_stores().values():
                    store._save_inventory_record()
            yield self.env.timeout(1)

    def run_simulation(self, final_time: int | None = None):
        """Run the fuel cycle simulation.

        Args:
            final_time (int, optional): Number of timesteps to run the simulation. Defaults to the
                configured 'duration'.
        """
        if final_time is None:
            final_time = self.simulation_params.get('duration', 1)

        for facility in self.facilities.values():
            facility.build()
        self.env.process(self._run_periods())

        # Start simulation
        print("Starting simulation")
        start = time.time()
        self.env.run(until = final_time)
        end = time.time()
        print(f'Simulation complete; Running time={end-start}')

class EnrichmentCycle(SimulationRun):
    """Fuel Cycle simulation of a single enrichment plant between a natural uranium supplier
       and consumers of enriched product and tails.

        The default parameters are specified in the enrichment_default.json file in this same folder.
        This file can be copied and modified to simulate other plant configurations.
    """
    def __init__(self,
                 config_path: str | pa.Path = None,
                 log_file: str | pa.Path = None):
        """Instantiate the enrichment fuel cycle

        Args:
            config_path (str | pa.Path, optional): Path to a custom config file, otherwise default settings will be used. Defaults to None.
            log_file ((str | pa.Path), optional): Path to desired log file. Defaults to None.
        """
        super().__init__(log_file)
        if config_path is None:
            absolute_module_dir = pa.Path(os.path.abspath(os.path.dirname(__file__)))
            config_path = absolute_module_dir / 'enrichment_default.json'
        self.load_config(config_path)
