from quotegrid import db

LINE_ITEM = 'item'
LINE_LABOR = 'labor'
LINE_EXPENSE = 'expense'


class Quote(db.Model):
    __tablename__ = 'quote'
    id             = db.Column(db.Integer, primary_key=True)
    name           = db.Column(db.String(200), nullable=False, default='')
    default_markup = db.Column(db.Float, default=0.0)   # fraction, 0.15 = 15%
    lists          = db.Column(db.JSON, default=dict)   # units / expAccounts / defaultLabor
    boms           = db.relationship(
                       'QuoteBom',
                       backref='quote',
                       lazy=True,
                       order_by='QuoteBom.position',
                       cascade='all, delete-orphan'
                     )
    lines          = db.relationship(
                       'QuoteLine',
                       backref='quote',
                       lazy=True,
                       order_by='QuoteLine.position',
                       cascade='all, delete-orphan'
                     )

    @property
    def summary_lines(self):
        """Misc items typed straight onto the Summary sheet."""
        return [l for l in self.lines if l.bom_id is None]


class QuoteBom(db.Model):
    __tablename__ = 'quote_bom'
    id       = db.Column(db.Integer, primary_key=True)
    quote_id = db.Column(db.Integer, db.ForeignKey('quote.id'), nullable=False)
    name     = db.Column(db.String(31), nullable=False)   # doubles as the sheet name
    position = db.Column(db.Integer, default=0)
    quantity = db.Column(db.Integer, default=1)   # Summary roll-up row quantity
    lines    = db.relationship(
                 'QuoteLine',
                 backref='bom',
                 lazy=True,
                 order_by='QuoteLine.position',
                 cascade='all, delete-orphan'
               )

    def lines_of(self, kind):
        return [l for l in self.lines if l.kind == kind]


class QuoteLine(db.Model):
    __tablename__ = 'quote_line'
    id                 = db.Column(db.Integer, primary_key=True)
    quote_id           = db.Column(db.Integer, db.ForeignKey('quote.id'), nullable=False)
    bom_id             = db.Column(db.Integer, db.ForeignKey('quote_bom.id'), nullable=True)
    kind               = db.Column(db.String(16), nullable=False)   # item / labor / expense
    position           = db.Column(db.Integer, default=0)
    key                = db.Column(db.Integer, index=True)          # hidden grid key, = id once saved
    object_id          = db.Column(db.Integer, default=0)           # catalog item / labor role / account
    name               = db.Column(db.String(200), default='')
    new_name           = db.Column(db.String(200))
    description        = db.Column(db.Text, default='')
    new_description    = db.Column(db.Text)
    quantity           = db.Column(db.Float, default=0)
    unit_price         = db.Column(db.Float, default=0.0)
    markup_percent     = db.Column(db.Float, default=0.0)
    discount           = db.Column(db.Boolean, nullable=True)
    units              = db.Column(db.String(32), default='')
    units_type         = db.Column(db.Integer, nullable=True)
    vendor_id          = db.Column(db.Integer, default=0)
    vendor             = db.Column(db.String(200), default='')
    new_vendor         = db.Column(db.String(200))
    manufacturer       = db.Column(db.String(200), default='')
    part_number        = db.Column(db.String(100), default='')
    service_group_id   = db.Column(db.Integer, default=0)
    service_group_name = db.Column(db.String(100), default='')
