# this file defines the database structure for the saree inventory
# 5 tables: users, sarees, saree images, sales and purchases

from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime

db = SQLAlchemy()

MONEY = db.Numeric(12, 2)


# table 1: users - the shop owner's login
class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    password_hash = db.Column(db.String(200), nullable=False) # stored as a secure hash

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)


# table 2: sarees - one row per kind of saree on the shelf
class Saree(db.Model):
    __tablename__ = 'sarees'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    type = db.Column(db.String(100), nullable=False)       # silk, cotton, ... free text
    price = db.Column(MONEY, nullable=False)               # catalog (cost) price
    quantity = db.Column(db.Integer, nullable=False, default=0)
    tags = db.Column(db.String(500))                       # comma separated
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    images = db.relationship(
        'SareeImage',
        backref='saree',
        order_by='SareeImage.position',
        cascade='all, delete-orphan',
        lazy=True,
    )

    __table_args__ = (
        db.CheckConstraint('quantity >= 0', name='ck_saree_quantity_non_negative'),
        db.CheckConstraint('price >= 0', name='ck_saree_price_non_negative'),
    )

    def __repr__(self):
        return f'<Saree {self.name}>'


# table 3: saree images - several photos (colours) per saree
class SareeImage(db.Model):
    __tablename__ = 'saree_images'

    id = db.Column(db.Integer, primary_key=True)
    saree_id = db.Column(db.Integer, db.ForeignKey('sarees.id', ondelete='CASCADE'), nullable=False, index=True)
    image_url = db.Column(db.String(500), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)


# table 4: sales - one row per sale, prices copied at the time of sale
# saree_id is not a foreign key: sales stay after the saree is deleted
class Sale(db.Model):
    __tablename__ = 'sales'

    id = db.Column(db.Integer, primary_key=True)
    saree_id = db.Column(db.Integer, nullable=False, index=True)
    saree_name = db.Column(db.String(200))
    type = db.Column(db.String(100))
    customer_name = db.Column(db.String(200), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    selling_price = db.Column(MONEY, nullable=False)   # per unit, entered at the counter
    cost_price = db.Column(MONEY)                      # saree price when sold
    margin = db.Column(MONEY)                          # selling_price - cost_price
    image_url = db.Column(db.String(500))              # colour picked for this sale
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)


# table 5: purchases - money spent buying stock (investment)
class Purchase(db.Model):
    __tablename__ = 'purchases'

    id = db.Column(db.Integer, primary_key=True)
    saree_id = db.Column(db.Integer, nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_cost = db.Column(MONEY, nullable=False)
    total_cost = db.Column(MONEY, nullable=False)      # quantity * unit_cost
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
