from satsgame.models.user import User
from satsgame.models.asset import Asset
from satsgame.models.holding import Holding
from satsgame.models.purchase import Purchase
from satsgame.models.trade import Trade
from satsgame.models.set_forget import SetForgetPortfolio, SetForgetAllocation
