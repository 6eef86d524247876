from labloan.models.laboratory import Laboratory
from labloan.models.equipment import Equipment
from labloan.models.loan_request import LoanRequest
from labloan.models.history_entry import HistoryEntry
from labloan.models.notification import Notification
