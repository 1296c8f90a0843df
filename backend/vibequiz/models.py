from vibequiz import db
import json
import time


class StoreDocument(db.Model):
    """One JSON document of the replicated store, keyed ``<collection>/<key>``."""
    __tablename__ = 'store_document'
    key = db.Column(db.String(255), primary_key=True)
    collection = db.Column(db.String(32), nullable=False, index=True)
    body = db.Column(db.Text, nullable=False)  # JSON-encoded document
    updated_at = db.Column(db.Float, nullable=False, default=time.time)

    def __init__(self, **kwargs):
        super(StoreDocument, self).__init__(**kwargs)
        if self.key and not self.collection:
            self.collection = self.key.split('/', 1)[0]

    @property
    def value(self):
        return json.loads(self.body) if self.body else None

    @value.setter
    def value(self, new_value):
        self.body = json.dumps(new_value)
        self.updated_at = time.time()

    def to_dict(self):
        return {
            'key': self.key,
            'collection': self.collection,
            'value': self.value,
            'updated_at': self.updated_at,
        }
