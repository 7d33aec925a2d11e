"""Central enum-like definitions to avoid typos in permission strings.

Permissions are derived from the user's role at login and travel in the JWT
``perms`` claim; routes check them with ``@require_permissions``.
"""
from __future__ import annotations
from typing import List, Dict

SERVICES = ['ORD', 'CUST', 'BR', 'CAT', 'ACC', 'USR']

SERVICE_ACTIONS = {
    'ORD': ['READ', 'CREATE', 'UPDATE', 'STATUS'],
    'CUST': ['READ', 'MANAGE'],
    'BR': ['READ', 'MANAGE'],
    'CAT': ['READ', 'MANAGE'],
    'ACC': ['READ', 'CREATE'],
    'USR': ['MANAGE'],
}


def build_all_permission_codes() -> List[str]:
    codes: List[str] = []
    for svc, actions in SERVICE_ACTIONS.items():
        for act in actions:
            codes.append(f"{svc}.{act}")
    return codes

ALL_PERMISSION_CODES = build_all_permission_codes()

ROLE_PRESETS: Dict[str, List[str]] = {
    'admin': ['*'],
    # front desk: intake, edits, scanning, customers and the branch ledger
    'branch_staff': [
        'ORD.READ', 'ORD.CREATE', 'ORD.UPDATE', 'ORD.STATUS',
        'CUST.READ', 'CUST.MANAGE',
        'BR.READ',
        'CAT.READ',
        'ACC.READ', 'ACC.CREATE',
    ],
    # bench work: find orders and move them along
    'technician': ['ORD.READ', 'ORD.STATUS', 'CUST.READ', 'BR.READ', 'CAT.READ'],
}
