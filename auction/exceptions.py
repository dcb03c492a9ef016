"""
Error taxonomy shared by the transaction engine, the JSON API and the
auctioneer websocket.

Every error carries a stable ``code`` for clients and the HTTP ``status``
the API answers with.
"""


class AuctionError(Exception):
    code = 'auction_error'
    status = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def as_dict(self):
        return {'success': False, 'error': self.message, 'code': self.code}


class EntityNotFound(AuctionError):
    code = 'not_found'
    status = 404

    def __init__(self, entity, entity_id):
        super().__init__(f'{entity} not found: {entity_id}')
        self.entity = entity
        self.entity_id = entity_id


class InsufficientFunds(AuctionError):
    code = 'insufficient_funds'
    status = 409

    def __init__(self, attempted, available):
        super().__init__(f'Insufficient funds: Team has {available}, bid is {attempted}')
        self.attempted = attempted
        self.available = available

    def as_dict(self):
        data = super().as_dict()
        data.update({'attempted': self.attempted, 'available': self.available})
        return data


class ValidationError(AuctionError):
    code = 'validation_error'
    status = 400

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = errors or {}

    def as_dict(self):
        data = super().as_dict()
        if self.errors:
            data['errors'] = self.errors
        return data


class StorageFault(AuctionError):
    code = 'storage_fault'
    status = 503


class AuthenticationFailed(AuctionError):
    code = 'invalid_credentials'
    status = 401
