from jenga_gateway.models.transaction import JengaTransaction

__all__ = ['JengaTransaction']
