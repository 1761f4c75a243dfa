import os

"""
where the survey registry lives on each chain. clients look their chain id up
here to know which address to encrypt inputs and sign decryptions for
"""

DEPLOYMENTS = {
    31337: {
        'chainName': 'hardhat',
        'address': '0x5FbDB2315678afecb367f032d93F642f64180aa3',
    },
    11155111: {
        'chainName': 'sepolia',
        'address': os.environ.get('SURVEYX_SEPOLIA_ADDRESS'),
    },
}


def get_deployment(chain_id):
    """Return the deployment entry for chain_id, or None if not deployed there."""
    entry = DEPLOYMENTS.get(int(chain_id))
    if not entry or not entry.get('address'):
        return None

    return {
        'chainId': int(chain_id),
        'chainName': entry['chainName'],
        'address': entry['address'],
    }


def get_contract_address(chain_id):
    deployment = get_deployment(chain_id)
    if deployment is None:
        return None
    return deployment['address']
