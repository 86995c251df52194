import datetime

__year__ = datetime.date.today().year
__version__ = "0.3.0"
__author__ = [
	"dirdump contributors",
]

BANNER = "dirdump v{} ({}) - by {}\n".format(__version__, __year__, ", ".join(__author__))
