from datetime import datetime
from jenga_gateway.extensions import db


class JengaTransaction(db.Model):
    __tablename__ = 'jenga_transactions'
    __table_args__ = (
        db.UniqueConstraint('order_reference', 'transaction_reference', name='unique_jenga_transaction'),
    )

    SUCCESS = 'SUCCESS'

    id = db.Column(db.Integer, primary_key=True)
    order_status = db.Column(db.String(150), index=True)
    order_reference = db.Column(db.String(150), index=True)
    # Empty string rather than NULL so the unique constraint applies
    transaction_reference = db.Column(db.String(150), index=True, nullable=False, default='')

    # Payment details, stored as delivered by the gateway
    transaction_amount = db.Column(db.String(150))
    transaction_currency = db.Column(db.String(150))
    payment_channel = db.Column(db.String(150))
    transaction_date = db.Column(db.DateTime, index=True)

    # Timestamps
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_successful(self):
        return (self.order_status or '').upper() == self.SUCCESS

    @property
    def formatted_amount(self):
        if not self.transaction_amount:
            return '0.00'
        try:
            return f'{float(self.transaction_amount):.2f}'
        except ValueError:
            return '0.00'

    @classmethod
    def successful(cls):
        return cls.query.filter(cls.order_status == cls.SUCCESS)

    @classmethod
    def failed(cls):
        return cls.query.filter(cls.order_status != cls.SUCCESS)

    @classmethod
    def by_order_reference(cls, order_reference):
        return cls.query.filter_by(order_reference=order_reference)

    def to_dict(self):
        return {
            'id': self.id,
            'order_status': self.order_status,
            'order_reference': self.order_reference,
            'transaction_reference': self.transaction_reference,
            'transaction_amount': self.transaction_amount,
            'transaction_currency': self.transaction_currency,
            'payment_channel': self.payment_channel,
            'transaction_date': self.transaction_date.isoformat() if self.transaction_date else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

    def __repr__(self):
        return f'<JengaTransaction {self.order_reference} - {self.order_status}>'
