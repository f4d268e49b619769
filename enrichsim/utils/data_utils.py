"""
This file contains utility functions for loading simulation results and creating plots of
inventories and separative work use at the enrichment facility.
"""
import pandas as pd
import matplotlib.pyplot as plt

def inv_bulk(mba):
    inv_bulk=mba['quantity']

    return inv_bulk

def in_out_totals(mba):
    return mba['ins'].to_numpy(), mba['outs'].to_numpy()

def enrichment_plot(enr_store, show=True):
    feed_inv = inv_bulk(enr_store['inventory'])
    plt.plot(feed_inv.index, feed_inv, label='Feed Inventory')

    tails_inv = inv_bulk(enr_store['tails'])
    plt.plot(tails_inv.index, tails_inv, label='Tails Inventory')

    plt.xlabel('week')
    plt.ylabel('Inventory (kg)')
    plt.title('Enrichment Inventories')
    plt.legend()
    if show:
        plt.show()

def enrichment_in_out_plot(enr_store, show=True):
    feed_in, feed_out = in_out_totals(enr_store['inventory_ins_and_outs'])
    plt.plot(feed_in, label='Feed In (kg)')
    plt.plot(feed_out, linestyle='--', label='Feed Out (kg)')

    tails_in, _ = in_out_totals(enr_store['tails_ins_and_outs'])
    plt.plot(tails_in, label='Tails In (kg)')

    plt.xlabel('week')
    plt.ylabel('kg')
    plt.title('Enrichment In/out')
    plt.legend()
    if show:
        plt.show()

def swu_plot(enr_store, swu_capacity=None, show=True):
    """Plot separative work used per week, with the weekly capacity if given"""
    enrichments = enr_store['enrichments']
    weekly = enrichments.groupby('time')[['swu', 'natural_uranium']].sum()
    plt.bar(weekly.index, weekly['swu'], label='SWU used')
    if swu_capacity is not None:
        plt.axhline(swu_capacity, color='k', linestyle='--', label='SWU capacity')

    plt.xlabel('week')
    plt.ylabel('kg SWU')
    plt.title('Enrichment Separative Work')
    plt.legend()
    if show:
        plt.show()
    return weekly

def load_all_inventory(file_path):
    """
    Load all inventory data from the HDF5 file into a nested dictionary.

    Parameters:
    - file_path: str, path to the HDF5 file

    Returns:
    - Dictionary where the first key is the facility name and the second key is the store name,
    containing the DataFrame for each store.
    """
    inventory_data = {}

    with pd.HDFStore(file_path, mode='r') as store:
        for key in store.keys():
            # Split the key to extract facility and store names
            path_parts = key.strip('/').split('/')
            facility_name = path_parts[0]
            store_name = path_parts[1]

            # Initialize nested dictionary if not already initialized
            if facility_name not in inventory_data:
                inventory_data[facility_name] = {}

            # Load the DataFrame
            inventory_data[facility_name][store_name] = store.get(key)

    return inventory_data
