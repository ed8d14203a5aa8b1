"""
Built-in contract templates offered to every tenant
"""

PREDEFINED_TEMPLATES = [
    {
        'key': 'assignment-standard',
        'name': 'Standard Assignment',
        'description': 'Standard assignment contract for general work',
        'contract_type': 'Assignment',
        'responsibilities': (
            '1. The Second Party agrees to complete all assigned tasks according to specifications.\n'
            '2. The First Party agrees to provide necessary resources and information.\n'
            '3. All work produced shall be the property of the First Party.\n'
            '4. The Second Party shall maintain confidentiality of all information shared.'
        ),
        'default_duration': 30,
        'category': 'general',
    },
    {
        'key': 'hourly-consulting',
        'name': 'Hourly Consulting',
        'description': 'Hourly rate consulting contract',
        'contract_type': 'Hourly',
        'responsibilities': (
            '1. The Second Party shall provide consulting services at an hourly rate.\n'
            '2. Hours worked shall be documented and submitted weekly.\n'
            '3. The First Party shall review and approve hours before payment.\n'
            '4. The Second Party shall be available during business hours for consultation.'
        ),
        'default_duration': 90,
        'category': 'consulting',
    },
    {
        'key': 'fixed-project',
        'name': 'Fixed Price Project',
        'description': 'Fixed price contract for defined project scope',
        'contract_type': 'Fixed',
        'responsibilities': (
            '1. The Second Party shall deliver the project as defined in the attached scope document.\n'
            '2. Payment shall be made according to the milestone schedule.\n'
            '3. Any changes to the scope shall require written approval and may affect the price.\n'
            '4. The Second Party shall provide weekly progress updates.'
        ),
        'default_duration': 60,
        'category': 'services',
    },
    {
        'key': 'retainer-services',
        'name': 'Monthly Retainer',
        'description': 'Monthly retainer for ongoing services',
        'contract_type': 'Retainer',
        'responsibilities': (
            '1. The Second Party shall provide ongoing services as needed.\n'
            '2. A fixed monthly fee shall be paid regardless of usage.\n'
            '3. Services beyond the agreed scope shall be billed separately.\n'
            '4. Either party may terminate with 30 days notice.'
        ),
        'default_duration': 180,
        'category': 'services',
    },
    {
        'key': 'employment-contract',
        'name': 'Employment Agreement',
        'description': 'Standard employment contract',
        'contract_type': 'Assignment',
        'responsibilities': (
            '1. The Employee agrees to work for the Employer in the position specified.\n'
            '2. The Employee shall receive the agreed-upon salary and benefits.\n'
            '3. The Employee shall adhere to all company policies and procedures.\n'
            '4. Either party may terminate employment with proper notice as specified.'
        ),
        'default_duration': 365,
        'category': 'employment',
    },
    {
        'key': 'legal-services',
        'name': 'Legal Services Agreement',
        'description': 'Contract for legal representation and services',
        'contract_type': 'Retainer',
        'responsibilities': (
            '1. The Attorney agrees to provide legal representation to the Client.\n'
            '2. The Client agrees to pay the Attorney the specified fees.\n'
            '3. The Attorney shall maintain client confidentiality.\n'
            '4. The Client shall provide truthful and complete information.'
        ),
        'default_duration': 180,
        'category': 'legal',
    },
    {
        'key': 'real-estate-lease',
        'name': 'Property Lease Agreement',
        'description': 'Contract for leasing real estate property',
        'contract_type': 'Fixed',
        'responsibilities': (
            '1. The Landlord agrees to lease the property to the Tenant.\n'
            '2. The Tenant agrees to pay the specified rent on time.\n'
            '3. The Tenant shall maintain the property in good condition.\n'
            '4. The Landlord shall provide necessary repairs and maintenance.'
        ),
        'default_duration': 365,
        'category': 'real-estate',
    },
    {
        'key': 'financial-loan',
        'name': 'Loan Agreement',
        'description': 'Contract for financial loan between parties',
        'contract_type': 'Fixed',
        'responsibilities': (
            '1. The Lender agrees to loan the specified amount to the Borrower.\n'
            '2. The Borrower agrees to repay the loan with interest as specified.\n'
            '3. The Borrower shall provide collateral as agreed.\n'
            '4. The Lender may take legal action in case of default.'
        ),
        'default_duration': 365,
        'category': 'financial',
    },
]


def get_predefined_template(key):
    for template in PREDEFINED_TEMPLATES:
        if template['key'] == key:
            return dict(template)
    return None
