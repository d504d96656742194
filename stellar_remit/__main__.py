from stellar_remit.cli import main

main()
