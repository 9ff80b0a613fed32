from paket.cli import main

main()
