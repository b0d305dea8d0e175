# Chapter scripts: league shooting percentages and egg cartons
